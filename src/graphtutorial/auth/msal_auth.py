"""MSAL authentication for Microsoft Graph API.

Two credential types are supported:

- UserAuth: device code flow with delegated permissions. The user visits a URL
  and enters a code on any device. Tokens are cached on disk so later runs
  can acquire silently.
- AppOnlyAuth: client credentials flow with application permissions, used for
  directory-wide calls such as listing users.

Usage:
    from graphtutorial.auth import UserAuth

    auth = UserAuth(
        client_id=settings.app.client_id,
        tenant_id=settings.app.auth_tenant,
        scopes=settings.app.graph_user_scopes,
        token_cache_path=settings.auth.token_cache_path,
    )
    token = auth.get_access_token()
"""

import os
import stat
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import msal
import requests
from rich.console import Console
from rich.panel import Panel

from graphtutorial.config_schema import GRAPH_DEFAULT_SCOPE
from graphtutorial.core.errors import AuthenticationError
from graphtutorial.core.logging import get_logger
from graphtutorial.core.retry import DEFAULT_MAX_RETRIES, backoff_delay

logger = get_logger(__name__)
console = Console()

AUTHORITY_HOST = "https://login.microsoftonline.com"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DeviceCodeInfo:
    """What the user needs to complete device code sign-in."""

    user_code: str
    verification_uri: str
    message: str
    expires_in: int


DeviceCodeChallenge = Callable[[DeviceCodeInfo], None]


def display_device_code(info: DeviceCodeInfo) -> None:
    """Default challenge: show the verification URL and code in a panel."""
    panel_content = (
        f"To authenticate, open a browser and go to:\n\n"
        f"  [bold blue]{info.verification_uri}[/bold blue]\n\n"
        f"Enter this code: [bold green]{info.user_code}[/bold green]\n\n"
        f"Waiting for authentication..."
    )
    console.print()
    console.print(
        Panel(
            panel_content,
            title="Microsoft Authentication Required",
            border_style="bright_blue",
        )
    )
    console.print()


def _with_retry(operation: Callable[[], T], description: str) -> T:
    """Run an MSAL call, retrying transient network errors with backoff.

    Raises:
        requests.exceptions.RequestException: The last error once retries run out
    """
    for attempt in range(DEFAULT_MAX_RETRIES - 1):
        try:
            return operation()
        except requests.exceptions.RequestException as e:
            delay = backoff_delay(attempt)
            logger.warning(
                f"{description} failed, retrying",
                attempt=attempt + 1,
                max_retries=DEFAULT_MAX_RETRIES,
                delay=delay,
                error=str(e),
            )
            time.sleep(delay)

    try:
        return operation()
    except requests.exceptions.RequestException as e:
        logger.error(
            f"{description} failed after retries",
            max_retries=DEFAULT_MAX_RETRIES,
            error=str(e),
        )
        raise


def _require_client_id(client_id: str) -> None:
    if not client_id or not client_id.strip():
        raise ValueError(
            "client_id is required. "
            "Register an app in Azure Portal: https://portal.azure.com → "
            "Microsoft Entra ID → App registrations → New registration"
        )


class UserAuth:
    """Delegated authentication via the MSAL device code flow.

    Attributes:
        client_id: Azure AD Application (client) ID
        tenant_id: Authority tenant ('common', 'organizations' or a tenant ID)
        scopes: Delegated Microsoft Graph permission scopes
        token_cache_path: Path to the token cache file

    Security notes:
        - Token cache file is created with mode 600 (owner read/write only)
        - Refresh tokens in the cache are sensitive and should be protected
    """

    def __init__(
        self,
        client_id: str,
        tenant_id: str,
        scopes: list[str],
        token_cache_path: str,
        challenge: DeviceCodeChallenge | None = None,
    ):
        """Initialize the device code authentication handler.

        Args:
            client_id: Azure AD Application (client) ID
            tenant_id: Authority tenant
            scopes: Delegated Graph permission scopes
            token_cache_path: Path to store the token cache file
            challenge: Called with the device code details; defaults to a console panel

        Raises:
            ValueError: If client_id is empty
        """
        _require_client_id(client_id)

        self.client_id = client_id
        self.tenant_id = tenant_id
        self.scopes = list(scopes)
        self.token_cache_path = Path(token_cache_path)
        self.challenge = challenge or display_device_code
        self.cache = msal.SerializableTokenCache()

        self._load_cache()

        self.app = msal.PublicClientApplication(
            client_id=self.client_id,
            authority=f"{AUTHORITY_HOST}/{tenant_id}",
            token_cache=self.cache,
        )

        logger.debug(
            "UserAuth initialized",
            client_id=client_id[:8] + "...",
            tenant_id=tenant_id,
            scopes=self.scopes,
        )

    def get_access_token(self) -> str:
        """Get a valid access token, signing in with a device code if needed.

        Silent acquisition from the cache (or refresh token) is tried first.

        Raises:
            AuthenticationError: If no token could be acquired
        """
        accounts = self.app.get_accounts()
        if accounts:
            logger.debug(
                "Attempting silent token acquisition",
                account_count=len(accounts),
                username=accounts[0].get("username", "unknown"),
            )
            try:
                result = _with_retry(
                    lambda: self.app.acquire_token_silent(scopes=self.scopes, account=accounts[0]),
                    "Silent token acquisition",
                )
            except requests.exceptions.RequestException:
                result = None

            if result and "access_token" in result:
                self._save_cache()
                logger.debug("Token acquired silently (from cache/refresh)")
                return result["access_token"]

            if result:
                logger.debug(
                    "Silent acquisition failed",
                    error=result.get("error"),
                    description=result.get("error_description"),
                )

        logger.info("Initiating device code flow authentication")
        return self._device_code_flow()

    def _device_code_flow(self) -> str:
        try:
            flow = _with_retry(
                lambda: self.app.initiate_device_flow(scopes=self.scopes),
                "Device flow initiation",
            )
        except requests.exceptions.RequestException as e:
            raise AuthenticationError(
                f"Failed to initiate device code flow after {DEFAULT_MAX_RETRIES} attempts: {e}. "
                "Check your network connection and try again."
            ) from e

        if "user_code" not in flow:
            error_msg = flow.get("error_description", "Unknown error during flow initiation")
            logger.error("Device code flow initiation failed", error=error_msg)
            raise AuthenticationError(
                f"Failed to initiate device code flow: {error_msg}. "
                "Check that 'Allow public client flows' is enabled in Azure Portal: "
                "App registrations → Your app → Authentication → Advanced settings"
            )

        self.challenge(
            DeviceCodeInfo(
                user_code=flow["user_code"],
                verification_uri=flow["verification_uri"],
                message=flow.get("message", ""),
                expires_in=int(flow.get("expires_in", 0)),
            )
        )

        try:
            result = _with_retry(
                lambda: self.app.acquire_token_by_device_flow(flow),
                "Device flow token acquisition",
            )
        except requests.exceptions.RequestException as e:
            result = {
                "error": "network_error",
                "error_description": f"Network error after {DEFAULT_MAX_RETRIES} retries: {e}",
            }

        if "access_token" not in result:
            raise self._device_flow_error(result)

        self._save_cache()
        logger.info(
            "Authentication successful",
            username=result.get("id_token_claims", {}).get("preferred_username", "unknown"),
        )
        return result["access_token"]

    @staticmethod
    def _device_flow_error(result: dict[str, Any]) -> AuthenticationError:
        """Map an MSAL error dict to an actionable AuthenticationError."""
        error = result.get("error", "unknown_error")
        error_desc = result.get("error_description", "Authentication failed")

        if error == "authorization_pending":
            logger.error("Authentication timed out waiting for user")
            return AuthenticationError(
                "Authentication timed out. Please try again and complete the "
                "sign-in process within the time limit."
            )
        if error == "authorization_declined":
            logger.error("User declined authentication")
            return AuthenticationError(
                "Authentication was declined. Please try again and accept "
                "the permission request."
            )
        if "AADSTS7000218" in error_desc:
            logger.error("Public client flow not enabled")
            return AuthenticationError(
                "Device code flow is not enabled for this application. "
                "In Azure Portal: App registrations → Your app → Authentication → "
                "Advanced settings → Set 'Allow public client flows' to Yes"
            )
        logger.error("Device code flow authentication failed", error=error, description=error_desc)
        return AuthenticationError(f"Authentication failed: {error_desc}")

    def _load_cache(self) -> None:
        """Load the token cache from disk if it exists."""
        if not self.token_cache_path.exists():
            return
        try:
            self.cache.deserialize(self.token_cache_path.read_text())
            logger.debug("Token cache loaded", path=str(self.token_cache_path))
        except (OSError, ValueError) as e:
            logger.warning(
                "Failed to load token cache, will re-authenticate",
                path=str(self.token_cache_path),
                error=str(e),
            )

    def _save_cache(self) -> None:
        """Save the token cache to disk, readable by the owner only."""
        if not self.cache.has_state_changed:
            return

        try:
            self.token_cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.token_cache_path.write_text(self.cache.serialize())
            os.chmod(self.token_cache_path, stat.S_IRUSR | stat.S_IWUSR)
            logger.debug("Token cache saved", path=str(self.token_cache_path))
        except OSError as e:
            # Token will just need to be re-acquired next time
            logger.error(
                "Failed to save token cache",
                path=str(self.token_cache_path),
                error=str(e),
            )

    def get_accounts(self) -> list[dict]:
        """Get the list of cached accounts."""
        return self.app.get_accounts()

    def clear_cache(self) -> None:
        """Remove cached accounts and delete the cache file."""
        for account in self.app.get_accounts():
            self.app.remove_account(account)

        if self.token_cache_path.exists():
            try:
                self.token_cache_path.unlink()
                logger.info("Token cache cleared", path=str(self.token_cache_path))
            except OSError as e:
                logger.warning(
                    "Failed to delete token cache file",
                    path=str(self.token_cache_path),
                    error=str(e),
                )


class AppOnlyAuth:
    """Application authentication via the MSAL client credentials flow.

    Tokens carry the app's own permissions, so the scope is always the
    Graph ``.default`` scope. MSAL keeps the token in its in-memory cache
    and reuses it until it nears expiry.
    """

    scopes = [GRAPH_DEFAULT_SCOPE]

    def __init__(self, client_id: str, tenant_id: str, client_secret: str):
        _require_client_id(client_id)

        self.client_id = client_id
        self.tenant_id = tenant_id
        self.app = msal.ConfidentialClientApplication(
            client_id,
            authority=f"{AUTHORITY_HOST}/{tenant_id}",
            client_credential=client_secret,
        )

        logger.debug(
            "AppOnlyAuth initialized",
            client_id=client_id[:8] + "...",
            tenant_id=tenant_id[:8] + "...",
        )

    def get_access_token(self) -> str:
        """Acquire an app-only token.

        Raises:
            AuthenticationError: If the token endpoint rejects the credentials
        """
        try:
            result = _with_retry(
                lambda: self.app.acquire_token_for_client(scopes=self.scopes),
                "Client credential token acquisition",
            )
        except requests.exceptions.RequestException as e:
            raise AuthenticationError(
                f"Could not reach the token endpoint after {DEFAULT_MAX_RETRIES} attempts: {e}"
            ) from e

        if "access_token" not in result:
            error_desc = result.get("error_description", result.get("error", "unknown_error"))
            logger.error("Client credential authentication failed", error=result.get("error"))
            raise AuthenticationError(
                f"App-only authentication failed: {error_desc}. "
                "Check app.tenant_id and app.client_secret, and that admin consent "
                "was granted for the application permissions."
            )

        return result["access_token"]

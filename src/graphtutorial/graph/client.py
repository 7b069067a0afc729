"""Base Microsoft Graph API client with retry logic and error handling.

Provides:
- Bearer token injection from any auth object with get_access_token()
- Retry with jittered backoff for 5xx, 429, timeouts and connection errors
- Mapping of Graph error bodies to GraphAPIError
- Single-page collection reads (GraphPage)

Usage:
    from graphtutorial.auth import UserAuth
    from graphtutorial.graph.client import GraphClient

    client = GraphClient(auth)
    me = client.get("/me")
    print(me["displayName"])
"""

import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from graphtutorial.core.errors import AuthenticationError, GraphAPIError, RateLimitExceeded
from graphtutorial.core.logging import get_logger
from graphtutorial.core.retry import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAYS,
    backoff_delay,
    jittered,
)

logger = get_logger(__name__)

# Microsoft Graph API base URL
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class TokenProvider(Protocol):
    def get_access_token(self) -> str: ...


@dataclass
class GraphPage:
    """One page of a Graph collection response.

    Attributes:
        value: Items on this page, as returned by the service
        next_link: @odata.nextLink for the following page, if any
    """

    value: list[dict[str, Any]] = field(default_factory=list)
    next_link: str | None = None

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "GraphPage":
        return cls(
            value=list(response.get("value", [])),
            next_link=response.get("@odata.nextLink"),
        )

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.value)

    def __len__(self) -> int:
        return len(self.value)

    @property
    def has_more(self) -> bool:
        return self.next_link is not None


class GraphClient:
    """Microsoft Graph API client with retry logic and error handling.

    Attributes:
        auth: Token provider (UserAuth or AppOnlyAuth)
        base_url: Microsoft Graph API base URL
        max_retries: Maximum number of retry attempts
        retry_delays: Delay (seconds) before each retry

    Example:
        client = GraphClient(auth)

        messages = client.get(
            "/me/mailFolders/inbox/messages",
            params={"$top": 10, "$select": "id,subject"},
        )
        client.post("/me/sendMail", json={"message": {...}})
    """

    def __init__(
        self,
        auth: TokenProvider,
        base_url: str = GRAPH_BASE_URL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delays: list[float] | None = None,
    ):
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delays = retry_delays or DEFAULT_RETRY_DELAYS

        # Session for connection pooling
        self.session = requests.Session()

        logger.debug(
            "GraphClient initialized",
            base_url=self.base_url,
            max_retries=self.max_retries,
        )

    def _get_headers(self) -> dict[str, str]:
        """Request headers carrying the current access token.

        Raises:
            AuthenticationError: If token cannot be acquired
        """
        try:
            token = self.auth.get_access_token()
        except AuthenticationError:
            raise
        except Exception as e:
            logger.error("Failed to get access token", error=str(e))
            raise AuthenticationError(
                f"Cannot authenticate with Microsoft Graph: {e}. "
                "Run 'graphtutorial validate-config' to check your auth settings."
            ) from e

        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _make_url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint  # Already absolute (e.g., @odata.nextLink)
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return self.base_url + endpoint

    def _handle_error_response(
        self, response: requests.Response, method: str, endpoint: str
    ) -> None:
        """Raise the GraphAPIError matching an error response.

        Raises:
            GraphAPIError: Always
        """
        error_code = "unknown"
        error_message = response.text or f"HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        error_info = body.get("error") if isinstance(body, dict) else None
        if isinstance(error_info, dict):
            error_code = error_info.get("code", error_code)
            error_message = str(error_info.get("message") or error_message)
        elif isinstance(error_info, str):
            error_code = error_info

        logger.error(
            "Graph API error",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message[:200],
        )

        status = response.status_code
        if status == 401:
            raise GraphAPIError(
                f"Authentication failed (401): {error_message}. "
                "Your access token may have expired. Run 'graphtutorial logout' and sign in again.",
                status_code=401,
                error_code=error_code,
            )
        if status == 403:
            raise GraphAPIError(
                f"Permission denied (403): {error_message}. "
                "Check that the required API permissions are granted in Azure Portal.",
                status_code=403,
                error_code=error_code,
            )
        if status == 404:
            raise GraphAPIError(
                f"Resource not found (404): {error_message}. "
                f"The endpoint '{endpoint}' may be incorrect or the resource doesn't exist.",
                status_code=404,
                error_code=error_code,
            )
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitExceeded(
                f"Rate limit exceeded (429). Retry after: {retry_after or 'unknown'} seconds.",
                retry_after=retry_after,
            )
        raise GraphAPIError(
            f"Graph API error ({status}): {error_message}",
            status_code=status,
            error_code=error_code,
        )

    def _should_retry(self, response: requests.Response, attempt: int) -> bool:
        if attempt >= self.max_retries:
            return False
        return response.status_code == 429 or 500 <= response.status_code < 600

    def _get_retry_delay(self, response: requests.Response, attempt: int) -> float:
        """Delay before the next attempt, honouring Retry-After on 429."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    return jittered(float(retry_after))
                except ValueError:
                    pass  # Fall through to default
        return backoff_delay(attempt, self.retry_delays)

    def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float = 30.0,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP request to the Graph API with retry logic.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint path or absolute URL
            params: URL query parameters
            json: JSON body for POST/PATCH requests
            timeout: Request timeout in seconds
            extra_headers: Additional headers (e.g., workbook-session-id)

        Returns:
            Parsed JSON response, or {} when the service returns no body

        Raises:
            GraphAPIError: For API errors (4xx, 5xx) and exhausted network retries
            RateLimitExceeded: When 429 persists after retries
            AuthenticationError: When a token cannot be acquired
        """
        url = self._make_url(endpoint)
        last_response = None

        for attempt in range(self.max_retries + 1):
            headers = self._get_headers()
            if extra_headers:
                headers.update(extra_headers)

            logger.debug(
                "Graph API request",
                method=method,
                endpoint=endpoint,
                attempt=attempt + 1,
                params=list(params.keys()) if params else None,
            )

            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                    timeout=timeout,
                )
            except requests.exceptions.Timeout:
                if attempt < self.max_retries:
                    delay = backoff_delay(attempt, self.retry_delays)
                    logger.warning(
                        "Graph API request timed out, retrying",
                        method=method,
                        endpoint=endpoint,
                        attempt=attempt + 1,
                        delay=delay,
                    )
                    time.sleep(delay)
                    continue
                raise GraphAPIError(
                    f"Request to {endpoint} timed out after {timeout}s and {self.max_retries} retries. "
                    "Microsoft Graph API may be experiencing issues."
                ) from None
            except requests.exceptions.ConnectionError as e:
                if attempt < self.max_retries:
                    delay = backoff_delay(attempt, self.retry_delays)
                    logger.warning(
                        "Graph API connection error, retrying",
                        method=method,
                        endpoint=endpoint,
                        attempt=attempt + 1,
                        error=str(e),
                        delay=delay,
                    )
                    time.sleep(delay)
                    continue
                raise GraphAPIError(
                    f"Connection to Microsoft Graph failed: {e}. "
                    "Check your internet connection and try again."
                ) from e

            last_response = response

            if response.status_code < 400:
                if response.status_code == 204 or not response.content:
                    return {}
                return response.json()

            if self._should_retry(response, attempt):
                delay = self._get_retry_delay(response, attempt)
                logger.warning(
                    "Retrying Graph API request",
                    method=method,
                    endpoint=endpoint,
                    status_code=response.status_code,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                )
                time.sleep(delay)
                continue

            self._handle_error_response(response, method, endpoint)

        if last_response is not None:
            self._handle_error_response(last_response, method, endpoint)

        raise GraphAPIError(f"Request to {endpoint} failed after {self.max_retries} retries")

    def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float = 30.0,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make a GET request to the Graph API."""
        return self.request(
            "GET", endpoint, params=params, timeout=timeout, extra_headers=extra_headers
        )

    def post(
        self,
        endpoint: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float = 30.0,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make a POST request to the Graph API."""
        return self.request(
            "POST",
            endpoint,
            params=params,
            json=json,
            timeout=timeout,
            extra_headers=extra_headers,
        )

    def get_page(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> GraphPage:
        """Fetch a single page of a collection.

        Only the first page is read; callers that need more can pass
        page.next_link back in as the endpoint.
        """
        page = GraphPage.from_response(self.get(endpoint, params=params, extra_headers=extra_headers))
        logger.debug(
            "Graph page fetched",
            endpoint=endpoint,
            items=len(page),
            has_more=page.has_more,
        )
        return page

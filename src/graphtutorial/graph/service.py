"""Graph façade used by the demo application.

Wires settings, credentials, clients and managers together. User operations
run with delegated permissions after initialize_for_user_auth(); get_users()
runs with application permissions and builds its credential on first use.

Usage:
    from graphtutorial.config import get_config
    from graphtutorial.graph import GraphService

    graph = GraphService(get_config())
    graph.initialize_for_user_auth()

    user = graph.get_user()
    inbox = graph.get_inbox()
"""

from typing import Any

from graphtutorial.auth import AppOnlyAuth, DeviceCodeChallenge, UserAuth
from graphtutorial.config_schema import Settings
from graphtutorial.core.errors import ConfigValidationError, GraphNotInitializedError
from graphtutorial.core.logging import get_logger
from graphtutorial.graph.client import GraphClient, GraphPage
from graphtutorial.graph.drive import DriveManager
from graphtutorial.graph.mail import MailManager
from graphtutorial.graph.users import UserManager

logger = get_logger(__name__)


class GraphService:
    """Entry point for every Graph call the tutorial makes.

    Attributes:
        settings: Validated application settings
        user_auth: Device code credential, set by initialize_for_user_auth()
        user_client: GraphClient using user_auth
        app_auth: Client credential, created on the first app-only call
        app_client: GraphClient using app_auth
    """

    def __init__(self, settings: Settings | None):
        if settings is None:
            raise ConfigValidationError("Settings cannot be None")

        self.settings = settings
        self.user_auth: UserAuth | None = None
        self.user_client: GraphClient | None = None
        self.app_auth: AppOnlyAuth | None = None
        self.app_client: GraphClient | None = None

        self._mail: MailManager | None = None
        self._drive: DriveManager | None = None
        self._users: UserManager | None = None

    def initialize_for_user_auth(self, challenge: DeviceCodeChallenge | None = None) -> None:
        """Create the device code credential and the user client.

        No network call happens here; sign-in is triggered by the first request.

        Args:
            challenge: Receives the device code prompt; defaults to a console panel
        """
        app = self.settings.app
        self.user_auth = UserAuth(
            client_id=app.client_id,
            tenant_id=app.auth_tenant,
            scopes=app.graph_user_scopes,
            token_cache_path=self.settings.auth.token_cache_path,
            challenge=challenge,
        )
        self.user_client = GraphClient(self.user_auth)
        self._mail = MailManager(self.user_client)
        self._drive = DriveManager(self.user_client)
        self._users = UserManager(self.user_client)

        logger.info("Graph initialized for user auth", auth_tenant=app.auth_tenant)

    def _require_user_client(self) -> None:
        if self.user_auth is None or self.user_client is None:
            raise GraphNotInitializedError()

    def get_user_token(self) -> str:
        """Access token for the configured user scopes."""
        self._require_user_client()
        return self.user_auth.get_access_token()

    def get_user(self) -> dict[str, Any]:
        self._require_user_client()
        return self._users.get_me()

    def get_inbox(self) -> GraphPage:
        self._require_user_client()
        return self._mail.get_inbox()

    def send_mail(self, subject: str, body: str, recipient: str) -> None:
        self._require_user_client()
        self._mail.send_mail(subject, body, recipient)

    def list_drive_root(self) -> GraphPage:
        self._require_user_client()
        return self._drive.list_root_children()

    def get_workbook_worksheets(self, file_name: str) -> GraphPage | None:
        """Worksheets of ``<file_name>.xlsx`` in the user's drive, or None if absent."""
        self._require_user_client()
        return self._drive.get_workbook_worksheets(file_name)

    def _ensure_app_only_auth(self) -> GraphClient:
        """Build the client credential and app client once, then reuse them.

        Raises:
            ConfigValidationError: If tenant_id or client_secret is missing
        """
        if self.app_auth is None:
            app = self.settings.app
            app.require_app_only()
            self.app_auth = AppOnlyAuth(
                client_id=app.client_id,
                tenant_id=app.tenant_id,
                client_secret=app.client_secret,
            )
            logger.info("Graph initialized for app-only auth")

        if self.app_client is None:
            self.app_client = GraphClient(self.app_auth)

        return self.app_client

    def get_users(self) -> GraphPage:
        """First page of directory users, using application permissions."""
        return UserManager(self._ensure_app_only_auth()).list_users()

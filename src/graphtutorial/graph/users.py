"""User and directory reads for Microsoft Graph API.

Usage:
    users = UserManager(client)
    me = users.get_me()
    page = users.list_users()  # needs an app-only client
"""

from typing import TYPE_CHECKING, Any

from graphtutorial.core.logging import get_logger

if TYPE_CHECKING:
    from graphtutorial.graph.client import GraphClient, GraphPage

logger = get_logger(__name__)

ME_FIELDS = "displayName,mail,userPrincipalName"
DIRECTORY_USER_FIELDS = "displayName,id,mail"
DIRECTORY_PAGE_SIZE = 25


class UserManager:
    """Reads the signed-in user's profile and the tenant's user directory."""

    def __init__(self, client: "GraphClient"):
        self.client = client

    def get_me(self, select: str = ME_FIELDS) -> dict[str, Any]:
        """Get the signed-in user's profile (delegated client)."""
        return self.client.get("/me", params={"$select": select})

    def list_users(
        self,
        select: str = DIRECTORY_USER_FIELDS,
        top: int = DIRECTORY_PAGE_SIZE,
        order_by: str = "displayName",
    ) -> "GraphPage":
        """List directory users ordered by display name.

        Requires a client authenticated with application permissions
        (User.Read.All).
        """
        page = self.client.get_page(
            "/users",
            params={"$select": select, "$top": top, "$orderby": order_by},
        )
        logger.info("Directory users listed", count=len(page), has_more=page.has_more)
        return page

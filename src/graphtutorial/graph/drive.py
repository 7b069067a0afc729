"""OneDrive and Excel workbook operations for Microsoft Graph API.

Usage:
    drive = DriveManager(client)

    for item in drive.list_root_children():
        print(item["name"])

    worksheets = drive.get_workbook_worksheets("Budget")  # finds Budget.xlsx
"""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from graphtutorial.core.logging import get_logger

if TYPE_CHECKING:
    from graphtutorial.graph.client import GraphClient, GraphPage

logger = get_logger(__name__)

WORKBOOK_EXTENSION = ".xlsx"
WORKBOOK_SESSION_HEADER = "workbook-session-id"


def escape_odata_string(value: str) -> str:
    """Escape a value for use inside a single-quoted OData string literal."""
    return value.replace("'", "''")


class DriveManager:
    """Reads the signed-in user's OneDrive and its Excel workbooks."""

    def __init__(self, client: "GraphClient"):
        self.client = client

    def list_root_children(self) -> "GraphPage":
        """List the items at the root of the user's drive."""
        page = self.client.get_page("/me/drive/root/children")
        logger.info("Drive root listed", count=len(page), has_more=page.has_more)
        return page

    def search(self, query: str) -> "GraphPage":
        """Search the user's drive from the root."""
        encoded = quote(escape_odata_string(query), safe="")
        return self.client.get_page(f"/me/drive/root/search(q='{encoded}')")

    def find_workbook(self, file_name: str) -> dict[str, Any] | None:
        """Find the drive item named exactly ``<file_name>.xlsx``.

        Search is fuzzy on the service side, so results are filtered by name.
        """
        target = f"{file_name}{WORKBOOK_EXTENSION}"
        for item in self.search(file_name):
            if item.get("name") == target:
                return item
        logger.info("Workbook not found", file_name=target)
        return None

    def create_workbook_session(self, item_id: str, persist_changes: bool = True) -> str | None:
        """Open a workbook session and return its id."""
        response = self.client.post(
            f"/me/drive/items/{item_id}/workbook/createSession",
            json={"persistChanges": persist_changes},
        )
        return response.get("id")

    def get_workbook_worksheets(self, file_name: str) -> "GraphPage | None":
        """List the worksheets of ``<file_name>.xlsx``.

        A persistent workbook session is created first and its id is sent
        with the worksheet request.

        Returns:
            The worksheets page, or None if no drive item has that exact name
        """
        workbook = self.find_workbook(file_name)
        if workbook is None:
            return None

        item_id = workbook["id"]
        session_id = self.create_workbook_session(item_id)

        headers = {WORKBOOK_SESSION_HEADER: session_id} if session_id else None
        page = self.client.get_page(
            f"/me/drive/items/{item_id}/workbook/worksheets",
            extra_headers=headers,
        )
        logger.info(
            "Workbook worksheets listed",
            item_id=item_id,
            worksheets=len(page),
            has_session=session_id is not None,
        )
        return page

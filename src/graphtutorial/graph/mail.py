"""Mail operations for Microsoft Graph API.

This module covers the two mailbox calls the tutorial makes:
- Reading the newest messages in the inbox
- Sending a plain-text message to a single recipient

Usage:
    from graphtutorial.graph.client import GraphClient
    from graphtutorial.graph.mail import MailManager

    mail = MailManager(GraphClient(auth))

    for message in mail.get_inbox():
        print(message["subject"])

    mail.send_mail("Testing", "Hello world!", "someone@example.com")
"""

from typing import TYPE_CHECKING, Any

from graphtutorial.core.logging import get_logger

if TYPE_CHECKING:
    from graphtutorial.graph.client import GraphClient, GraphPage

logger = get_logger(__name__)

INBOX_FIELDS = "from,isRead,receivedDateTime,subject"
INBOX_PAGE_SIZE = 25
INBOX_ORDER = "receivedDateTime DESC"


def build_text_message(subject: str, body: str, recipient: str) -> dict[str, Any]:
    """Build a Graph message resource with a text body and one To recipient."""
    return {
        "subject": subject,
        "body": {
            "contentType": "text",
            "content": body,
        },
        "toRecipients": [
            {"emailAddress": {"address": recipient}},
        ],
    }


class MailManager:
    """Manages mailbox operations for the signed-in user.

    Attributes:
        client: GraphClient authenticated with delegated permissions
    """

    def __init__(self, client: "GraphClient"):
        self.client = client

    def get_inbox(
        self,
        select: str = INBOX_FIELDS,
        top: int = INBOX_PAGE_SIZE,
        order_by: str = INBOX_ORDER,
    ) -> "GraphPage":
        """Get the newest inbox messages, most recent first.

        Args:
            select: Fields to select
            top: Page size
            order_by: Sort order

        Returns:
            First page of messages as returned by Graph
        """
        page = self.client.get_page(
            "/me/mailFolders/inbox/messages",
            params={"$select": select, "$top": top, "$orderby": order_by},
        )
        logger.info("Inbox listed", count=len(page), has_more=page.has_more)
        return page

    def send_mail(self, subject: str, body: str, recipient: str, save_to_sent_items: bool = True) -> None:
        """Send a plain-text message.

        Args:
            subject: Message subject
            body: Plain-text body
            recipient: Email address of the single To recipient

        Raises:
            ValueError: If recipient is empty
            GraphAPIError: If Graph rejects the message
        """
        if not recipient or not recipient.strip():
            raise ValueError("recipient is required to send mail")

        payload = {
            "message": build_text_message(subject, body, recipient.strip()),
            "saveToSentItems": save_to_sent_items,
        }
        self.client.post("/me/sendMail", json=payload)

        logger.info("Mail sent", recipient_domain=recipient.strip().rpartition("@")[2])

"""Tests for the mail, drive and user managers.

GraphClient is mocked; the tests check the exact requests issued.
"""

from unittest.mock import MagicMock
from urllib.parse import urlparse

import pytest
import requests

from graphtutorial.graph.client import GRAPH_BASE_URL, GraphPage
from graphtutorial.graph.drive import DriveManager, escape_odata_string
from graphtutorial.graph.mail import MailManager, build_text_message
from graphtutorial.graph.users import UserManager

# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


class TestMailManager:
    def test_get_inbox_query(self, mock_client: MagicMock) -> None:
        mock_client.get_page.return_value = GraphPage(value=[{"subject": "Hi"}])

        page = MailManager(mock_client).get_inbox()

        assert page.value == [{"subject": "Hi"}]
        mock_client.get_page.assert_called_once_with(
            "/me/mailFolders/inbox/messages",
            params={
                "$select": "from,isRead,receivedDateTime,subject",
                "$top": 25,
                "$orderby": "receivedDateTime DESC",
            },
        )

    def test_send_mail_payload(self, mock_client: MagicMock) -> None:
        MailManager(mock_client).send_mail("Testing", "Hello world!", " adele@contoso.com ")

        mock_client.post.assert_called_once_with(
            "/me/sendMail",
            json={
                "message": {
                    "subject": "Testing",
                    "body": {"contentType": "text", "content": "Hello world!"},
                    "toRecipients": [{"emailAddress": {"address": "adele@contoso.com"}}],
                },
                "saveToSentItems": True,
            },
        )

    @pytest.mark.parametrize("recipient", ["", "   "])
    def test_send_mail_requires_recipient(self, mock_client: MagicMock, recipient: str) -> None:
        with pytest.raises(ValueError, match="recipient"):
            MailManager(mock_client).send_mail("s", "b", recipient)

        mock_client.post.assert_not_called()

    def test_build_text_message_keeps_empty_subject(self) -> None:
        message = build_text_message("", "body", "a@b.com")

        assert message["subject"] == ""
        assert message["body"]["contentType"] == "text"


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class TestDriveManager:
    def test_list_root_children(self, mock_client: MagicMock) -> None:
        mock_client.get_page.return_value = GraphPage(value=[{"name": "Documents"}])

        page = DriveManager(mock_client).list_root_children()

        assert page.value == [{"name": "Documents"}]
        mock_client.get_page.assert_called_once_with("/me/drive/root/children")

    def test_escape_odata_string(self) -> None:
        assert escape_odata_string("Q1 'final'") == "Q1 ''final''"

    def test_search_escapes_query(self, mock_client: MagicMock) -> None:
        DriveManager(mock_client).search("Bob's sheet")

        mock_client.get_page.assert_called_once_with(
            "/me/drive/root/search(q='Bob%27%27s%20sheet')"
        )

    @pytest.mark.parametrize(
        ("query", "encoded"),
        [
            ("Q1?", "Q1%3F"),
            ("Budget #2", "Budget%20%232"),
            ("2024/Q1", "2024%2FQ1"),
            ("100%", "100%25"),
        ],
    )
    def test_search_percent_encodes_url_special_characters(
        self, mock_client: MagicMock, query: str, encoded: str
    ) -> None:
        DriveManager(mock_client).search(query)

        endpoint = mock_client.get_page.call_args.args[0]
        assert endpoint == f"/me/drive/root/search(q='{encoded}')"
        assert "?" not in endpoint
        assert "#" not in endpoint

    def test_search_url_survives_request_preparation(self, mock_client: MagicMock) -> None:
        DriveManager(mock_client).search("Budget #2?")

        endpoint = mock_client.get_page.call_args.args[0]
        prepared = requests.Request("GET", GRAPH_BASE_URL + endpoint).prepare()
        parsed = urlparse(prepared.url)

        assert parsed.query == ""
        assert parsed.fragment == ""
        assert parsed.path.endswith("')")

    def test_get_workbook_worksheets_exact_match(self, mock_client: MagicMock) -> None:
        worksheets = GraphPage(value=[{"name": "Sheet1"}])
        mock_client.get_page.side_effect = [
            GraphPage(
                value=[
                    {"id": "item-1", "name": "Budget 2024.xlsx"},
                    {"id": "item-2", "name": "Budget.xlsx"},
                    {"id": "item-3", "name": "Budget.docx"},
                ]
            ),
            worksheets,
        ]
        mock_client.post.return_value = {"id": "session-9", "persistChanges": True}

        result = DriveManager(mock_client).get_workbook_worksheets("Budget")

        assert result is worksheets
        mock_client.post.assert_called_once_with(
            "/me/drive/items/item-2/workbook/createSession",
            json={"persistChanges": True},
        )
        mock_client.get_page.assert_called_with(
            "/me/drive/items/item-2/workbook/worksheets",
            extra_headers={"workbook-session-id": "session-9"},
        )

    def test_get_workbook_worksheets_not_found(self, mock_client: MagicMock) -> None:
        mock_client.get_page.return_value = GraphPage(value=[{"id": "x", "name": "Budget.csv"}])

        assert DriveManager(mock_client).get_workbook_worksheets("Budget") is None
        mock_client.post.assert_not_called()

    def test_worksheets_without_session_id(self, mock_client: MagicMock) -> None:
        mock_client.get_page.side_effect = [
            GraphPage(value=[{"id": "item-2", "name": "Budget.xlsx"}]),
            GraphPage(),
        ]
        mock_client.post.return_value = {}

        DriveManager(mock_client).get_workbook_worksheets("Budget")

        assert mock_client.get_page.call_args.kwargs["extra_headers"] is None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUserManager:
    def test_get_me_selects_profile_fields(self, mock_client: MagicMock) -> None:
        mock_client.get.return_value = {"displayName": "Adele Vance"}

        assert UserManager(mock_client).get_me() == {"displayName": "Adele Vance"}
        mock_client.get.assert_called_once_with(
            "/me", params={"$select": "displayName,mail,userPrincipalName"}
        )

    def test_list_users_query(self, mock_client: MagicMock) -> None:
        mock_client.get_page.return_value = GraphPage(value=[{"id": "u1"}])

        UserManager(mock_client).list_users()

        mock_client.get_page.assert_called_once_with(
            "/users",
            params={"$select": "displayName,id,mail", "$top": 25, "$orderby": "displayName"},
        )

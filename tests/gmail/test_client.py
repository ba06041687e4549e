"""Tests for the Gmail client module."""

import base64
import email
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from inbox_triage.gmail.client import EmailData, GmailClient, MailThread


def encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode()


def raw_message(
    message_id: str,
    thread_id: str = "thread456",
    labels: list[str] | None = None,
    body: str = "Test email body",
) -> dict:
    return {
        "id": message_id,
        "threadId": thread_id,
        "snippet": "Test email...",
        "labelIds": labels if labels is not None else ["INBOX", "UNREAD"],
        "internalDate": "1736589600000",
        "payload": {
            "headers": [
                {"name": "From", "value": "John <john@example.com>"},
                {"name": "To", "value": "me@example.com"},
                {"name": "Subject", "value": "Test Subject"},
                {"name": "Date", "value": "Mon, 11 Jan 2025 10:00:00 +0000"},
                {"name": "Message-ID", "value": f"<{message_id}@mail.example.com>"},
                {"name": "References", "value": "<original@message.id>"},
            ],
            "body": {"data": encode(body)},
        },
    }


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    """Gmail client backed by a mock API service."""
    return GmailClient(gmail_service=service)


class TestShouldSkipSender:
    """Tests for noreply/automated sender detection."""

    @pytest.mark.parametrize(
        "email,should_skip",
        [
            # Should skip (automated senders)
            ("noreply@example.com", True),
            ("no-reply@example.com", True),
            ("donotreply@company.com", True),
            ("do-not-reply@company.com", True),
            ("mailer-daemon@google.com", True),
            ("postmaster@gmail.com", True),
            ("notifications@github.com", True),
            ("notification@linkedin.com", True),
            ("alerts@aws.amazon.com", True),
            ("bounce@mail.example.com", True),
            ("automated@system.com", True),
            ("auto-reply@company.com", True),
            ("NOREPLY@EXAMPLE.COM", True),  # Case insensitive
            # Should NOT skip (real people)
            ("john@example.com", False),
            ("sarah.smith@company.com", False),
            ("support@company.com", False),
            ("info@business.com", False),
            ("reply@company.com", False),  # Has 'reply' but not 'noreply'
        ],
    )
    def test_should_skip_sender(self, client, email, should_skip):
        """Test various email addresses for skip detection."""
        result = client.should_skip_sender(email)
        assert result == should_skip, f"Expected {should_skip} for {email}"


class TestIsAutoReply:
    """Tests for auto-reply detection (out of office, etc.)."""

    @pytest.mark.parametrize(
        "subject,body,is_auto",
        [
            # Auto-replies
            ("Out of Office: Re: Meeting", "", True),
            ("Re: Question", "I am out of office until Monday", True),
            ("Automatic Reply: Your email", "", True),
            ("Auto-Reply: Received", "", True),
            ("RE: Project", "I am away from the office this week", True),
            ("Vacation", "I am on vacation until next month", True),
            ("Re: Urgent", "I am currently unavailable", True),
            # NOT auto-replies
            ("Meeting Request", "Can we meet tomorrow?", False),
            ("Question about office supplies", "We need more paper", False),
            ("Re: Budget", "I approve the budget", False),
        ],
    )
    def test_is_auto_reply(self, client, subject, body, is_auto):
        """Test various emails for auto-reply detection."""
        result = client.is_auto_reply(subject, body)
        assert result == is_auto, f"Expected {is_auto} for subject='{subject}'"


class TestParseEmailAddress:
    """Tests for email address parsing."""

    @pytest.mark.parametrize(
        "address,expected_name,expected_email",
        [
            ("John Smith <john@example.com>", "John Smith", "john@example.com"),
            ('"Jane Doe" <jane@company.com>', "Jane Doe", "jane@company.com"),
            ("john@example.com", "", "john@example.com"),
            ("<john@example.com>", "", "john@example.com"),
            ("  John  <john@example.com>  ", "John", "john@example.com"),
        ],
    )
    def test_parse_email_address(self, client, address, expected_name, expected_email):
        """Test parsing various email address formats."""
        name, email_address = client._parse_email_address(address)
        assert name == expected_name
        assert email_address == expected_email


class TestExtractBody:
    """Tests for email body extraction."""

    def test_extract_simple_body(self, client):
        payload = {"body": {"data": encode("Hello, this is the email body.")}}

        assert client._extract_body(payload) == "Hello, this is the email body."

    def test_extract_multipart_body(self, client):
        """Test extracting body from multipart email."""
        payload = {
            "parts": [
                {"mimeType": "text/plain", "body": {"data": encode("Plain text content")}},
                {"mimeType": "text/html", "body": {"data": encode("<p>HTML</p>")}},
            ]
        }

        assert client._extract_body(payload) == "Plain text content"

    def test_extract_nested_multipart(self, client):
        payload = {
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [{"mimeType": "text/plain", "body": {"data": encode("Nested")}}],
                }
            ]
        }

        assert client._extract_body(payload) == "Nested"

    def test_falls_back_to_html(self, client):
        payload = {"parts": [{"mimeType": "text/html", "body": {"data": encode("<p>Hi <b>there</b></p>")}}]}

        assert client._extract_body(payload) == "Hi there"

    def test_extract_body_empty_payload(self, client):
        assert client._extract_body({}) == ""


class TestParseMessage:
    def test_parse_message(self, client):
        """Test parsing a complete Gmail message."""
        result = client._parse_message(raw_message("msg123"))

        assert isinstance(result, EmailData)
        assert result.message_id == "msg123"
        assert result.thread_id == "thread456"
        assert result.from_email == "john@example.com"
        assert result.from_name == "John"
        assert result.to_email == "me@example.com"
        assert result.subject == "Test Subject"
        assert result.body == "Test email body"
        assert result.internal_date_ms == 1736589600000
        assert result.rfc_message_id == "<msg123@mail.example.com>"
        assert result.references == "<original@message.id>"
        assert "INBOX" in result.labels


class TestMailThread:
    def test_latest_ignores_drafts(self, client):
        thread = MailThread(
            "t1",
            [
                client._parse_message(raw_message("m1")),
                client._parse_message(raw_message("m2", labels=["DRAFT"])),
            ],
        )

        assert thread.latest.message_id == "m1"
        assert thread.has_draft is True
        assert thread.is_active is True

    def test_sent_message(self, client):
        assert client._parse_message(raw_message("m1", labels=["SENT"])).is_sent is True
        assert client._parse_message(raw_message("m2")).is_sent is False

    def test_archived_empty_thread(self):
        thread = MailThread("t1")

        assert thread.latest is None
        assert thread.is_active is False
        assert thread.has_draft is False


class TestSearch:
    def test_returns_thread_ids(self, client, service):
        threads = service.users().threads()
        threads.list.return_value.execute.return_value = {"threads": [{"id": "t1"}, {"id": "t2"}]}
        threads.list_next.return_value = None

        assert client.search("in:inbox label:todo") == ["t1", "t2"]
        assert threads.list.call_args.kwargs["q"] == "in:inbox label:todo"

    def test_follows_pages_up_to_max_results(self, client, service):
        threads = service.users().threads()
        threads.list.return_value.execute.return_value = {"threads": [{"id": "t1"}, {"id": "t2"}]}
        second_page = MagicMock()
        second_page.execute.return_value = {"threads": [{"id": "t3"}, {"id": "t4"}]}
        threads.list_next.side_effect = [second_page, None]

        assert client.search("in:inbox", max_results=3) == ["t1", "t2", "t3"]

    def test_no_matches(self, client, service):
        threads = service.users().threads()
        threads.list.return_value.execute.return_value = {}
        threads.list_next.return_value = None

        assert client.search("label:fyi") == []

    def test_http_error_propagates(self, client, service):
        service.users().threads().list.return_value.execute.side_effect = HttpError(
            resp=MagicMock(status=500), content=b"Backend Error"
        )

        with pytest.raises(HttpError):
            client.search("in:inbox")


class TestThreadOperations:
    def test_get_thread(self, client, service):
        service.users().threads().get.return_value.execute.return_value = {
            "messages": [raw_message("m1", thread_id="t1"), raw_message("m2", thread_id="t1")]
        }

        thread = client.get_thread("t1")

        assert [m.message_id for m in thread.messages] == ["m1", "m2"]
        assert client.is_active("t1") is True
        assert client.has_draft("t1") is False

    def test_archive_removes_inbox(self, client, service):
        client.archive("t1")

        kwargs = service.users().threads().modify.call_args.kwargs
        assert kwargs["id"] == "t1"
        assert kwargs["body"] == {"removeLabelIds": ["INBOX"]}

    def test_create_draft_threads_reply(self, client, service):
        service.users().drafts().create.return_value.execute.return_value = {"id": "draft-9"}
        reply_to = client._parse_message(raw_message("m1", thread_id="t1"))

        draft_id = client.create_draft("t1", reply_to, "Hi John,\n\nConfirmed.")

        assert draft_id == "draft-9"
        body = service.users().drafts().create.call_args.kwargs["body"]
        assert body["message"]["threadId"] == "t1"
        message = email.message_from_bytes(base64.urlsafe_b64decode(body["message"]["raw"]))
        assert message["to"] == "john@example.com"
        assert message["subject"] == "Re: Test Subject"
        assert message["In-Reply-To"] == "<m1@mail.example.com>"
        assert message["References"] == "<original@message.id> <m1@mail.example.com>"

    def test_forward_sends_with_note(self, client, service):
        service.users().messages().send.return_value.execute.return_value = {"id": "sent-1"}
        original = client._parse_message(raw_message("m1"))

        assert client.forward(original, "tasks@example.com", "FYI") == "sent-1"

        raw = service.users().messages().send.call_args.kwargs["body"]["raw"]
        message = email.message_from_bytes(base64.urlsafe_b64decode(raw))
        assert message["to"] == "tasks@example.com"
        assert message["subject"] == "Fwd: Test Subject"
        text = message.get_payload(decode=True).decode()
        assert text.startswith("FYI\n\n---------- Forwarded message ---------")
        assert "Test email body" in text

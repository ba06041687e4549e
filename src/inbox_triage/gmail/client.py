"""
Gmail API client for mailbox operations.

Handles searching threads, fetching full conversations, archiving,
drafting replies and sending messages. This is the mailbox collaborator
used by the triage run and by every agent.
"""

import base64
import logging
import re
from dataclasses import dataclass, field
from email.mime.text import MIMEText

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from inbox_triage.gmail.auth import get_gmail_service

logger = logging.getLogger(__name__)

INBOX_LABEL_ID = "INBOX"
DRAFT_LABEL_ID = "DRAFT"
SENT_LABEL_ID = "SENT"

# Patterns for senders we should NEVER draft replies to
NEVER_RESPOND_PATTERNS = [
    r"noreply@",
    r"no-reply@",
    r"donotreply@",
    r"do-not-reply@",
    r"mailer-daemon@",
    r"postmaster@",
    r"notifications?@",
    r"alerts?@",
    r"bounce@",
    r"automated@",
    r"auto-?reply@",
]

# Patterns in subject/body indicating auto-reply (out of office, etc.)
AUTO_REPLY_PATTERNS = [
    r"out[ -]of[ -]office",
    r"automatic reply",
    r"auto-?reply",
    r"away from.*office",
    r"on vacation",
    r"currently unavailable",
]


@dataclass
class EmailData:
    """Parsed email data structure."""

    message_id: str  # Gmail's internal API ID
    thread_id: str
    subject: str
    from_email: str
    from_name: str
    to_email: str
    date: str
    body: str
    snippet: str
    labels: list[str]
    internal_date_ms: int = 0
    rfc_message_id: str | None = None  # RFC 2822 Message-ID header (for threading)
    references: str | None = None

    @property
    def is_sent(self) -> bool:
        """Sent from this mailbox (by the owner or any of their aliases)."""
        return SENT_LABEL_ID in self.labels


@dataclass
class MailThread:
    """A conversation and the labels present on any of its messages."""

    thread_id: str
    messages: list[EmailData] = field(default_factory=list)

    @property
    def latest(self) -> EmailData | None:
        """Most recent non-draft message."""
        sent = [m for m in self.messages if DRAFT_LABEL_ID not in m.labels]
        return sent[-1] if sent else None

    @property
    def label_ids(self) -> set[str]:
        return {label for m in self.messages for label in m.labels}

    @property
    def is_active(self) -> bool:
        """Still in the inbox (not archived)."""
        return INBOX_LABEL_ID in self.label_ids

    @property
    def has_draft(self) -> bool:
        return any(DRAFT_LABEL_ID in m.labels for m in self.messages)


class GmailClient:
    """
    Gmail API client for mailbox operations.

    Provides methods to:
    - Search threads with Gmail query syntax
    - Fetch full threads (entire conversations)
    - Archive threads, create reply drafts, send messages
    - Detect automated/noreply senders
    """

    def __init__(self, gmail_service: Resource | None = None) -> None:
        """
        Initialize the Gmail client.

        Args:
            gmail_service: Gmail API service. If None, will be auto-created.
        """
        self._service = gmail_service

    @property
    def service(self) -> Resource:
        """Get Gmail service, creating if needed."""
        if self._service is None:
            self._service = get_gmail_service()
        return self._service

    def search(self, query: str, max_results: int = 50) -> list[str]:
        """
        Find threads matching a Gmail query.

        Args:
            query: Gmail search query (e.g. "in:inbox label:todo").
            max_results: Maximum number of thread IDs to return.

        Returns:
            Thread IDs, newest first as ordered by Gmail.
        """
        thread_ids: list[str] = []

        try:
            request = self.service.users().threads().list(
                userId="me", q=query, maxResults=min(max_results, 500)
            )

            while request is not None and len(thread_ids) < max_results:
                response = request.execute()
                thread_ids.extend(t["id"] for t in response.get("threads", []))

                request = self.service.users().threads().list_next(
                    previous_request=request,
                    previous_response=response,
                )

        except HttpError as e:
            logger.error(f"Failed to search threads ({query!r}): {e}")
            raise

        logger.debug(f"Search {query!r} matched {len(thread_ids)} thread(s)")
        return thread_ids[:max_results]

    def get_thread(self, thread_id: str) -> MailThread:
        """
        Fetch a complete email thread (conversation).

        Args:
            thread_id: The Gmail thread ID.

        Returns:
            MailThread with messages oldest first.
        """
        try:
            thread = (
                self.service.users()
                .threads()
                .get(userId="me", id=thread_id, format="full")
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to fetch thread {thread_id}: {e}")
            raise

        messages = [self._parse_message(m) for m in thread.get("messages", [])]
        return MailThread(thread_id=thread_id, messages=messages)

    def is_active(self, thread_id: str) -> bool:
        """Check whether a thread is still in the inbox."""
        return self.get_thread(thread_id).is_active

    def has_draft(self, thread_id: str) -> bool:
        """Check whether a thread already has a draft reply."""
        return self.get_thread(thread_id).has_draft

    def archive(self, thread_id: str) -> None:
        """Remove a thread from the inbox."""
        try:
            self.service.users().threads().modify(
                userId="me",
                id=thread_id,
                body={"removeLabelIds": [INBOX_LABEL_ID]},
            ).execute()
        except HttpError as e:
            logger.error(f"Failed to archive thread {thread_id}: {e}")
            raise

        logger.info(f"Archived thread {thread_id}")

    def create_draft(self, thread_id: str, reply_to: EmailData, body: str) -> str:
        """
        Create a draft reply inside an existing thread.

        Args:
            thread_id: The thread to reply in.
            reply_to: The message being replied to.
            body: Plain text body.

        Returns:
            The draft ID.
        """
        raw = self._encode(
            to=reply_to.from_email,
            subject=_reply_subject(reply_to.subject),
            body=body,
            in_reply_to=reply_to.rfc_message_id,
            references=_references_for(reply_to),
        )

        try:
            result = (
                self.service.users()
                .drafts()
                .create(
                    userId="me",
                    body={"message": {"raw": raw, "threadId": thread_id}},
                )
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to create draft in thread {thread_id}: {e}")
            raise

        draft_id = result["id"]
        logger.info(f"Created draft {draft_id} in thread {thread_id}")
        return draft_id

    def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        thread_id: str | None = None,
    ) -> str:
        """
        Send a new message.

        Args:
            to: Recipient email address.
            subject: Subject line.
            body: Plain text body.
            thread_id: Optional thread to attach the message to.

        Returns:
            The message ID of the sent message.
        """
        payload = {"raw": self._encode(to=to, subject=subject, body=body)}
        if thread_id:
            payload["threadId"] = thread_id

        try:
            result = (
                self.service.users()
                .messages()
                .send(userId="me", body=payload)
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to send message to {to}: {e}")
            raise

        sent_id = result["id"]
        logger.info(f"Sent message {sent_id} to {to}")
        return sent_id

    def forward(self, email: EmailData, to: str, note: str = "") -> str:
        """Forward a message's text to another address."""
        header = (
            "---------- Forwarded message ---------\n"
            f"From: {email.from_name} <{email.from_email}>\n"
            f"Date: {email.date}\n"
            f"Subject: {email.subject}\n"
            f"To: {email.to_email}\n"
        )
        body = f"{note}\n\n{header}\n{email.body}" if note else f"{header}\n{email.body}"
        return self.send_message(to=to, subject=f"Fwd: {email.subject}", body=body)

    def should_skip_sender(self, sender_email: str) -> bool:
        """
        Check if we should skip drafting a reply to this sender.

        Args:
            sender_email: The sender's email address.

        Returns:
            True for automated senders (noreply@, mailer-daemon@, ...).
        """
        sender_lower = sender_email.lower()

        for pattern in NEVER_RESPOND_PATTERNS:
            if re.search(pattern, sender_lower):
                logger.debug(f"Skipping sender {sender_email} (matches: {pattern})")
                return True

        return False

    def is_auto_reply(self, subject: str, body: str) -> bool:
        """Check if an email appears to be an automatic reply."""
        text_to_check = f"{subject} {body}".lower()
        return any(re.search(pattern, text_to_check) for pattern in AUTO_REPLY_PATTERNS)

    def _encode(
        self,
        to: str,
        subject: str,
        body: str,
        in_reply_to: str | None = None,
        references: str | None = None,
    ) -> str:
        message = MIMEText(body)
        message["to"] = to
        message["subject"] = subject
        if in_reply_to:
            message["In-Reply-To"] = in_reply_to
        if references:
            message["References"] = references
        return base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")

    def _parse_message(self, message: dict) -> EmailData:
        """
        Parse a Gmail API message into EmailData.

        Args:
            message: Raw message from Gmail API.

        Returns:
            Parsed EmailData object.
        """
        headers = {
            h["name"].lower(): h["value"]
            for h in message.get("payload", {}).get("headers", [])
        }

        from_name, from_email = self._parse_email_address(headers.get("from", ""))

        return EmailData(
            message_id=message["id"],
            thread_id=message["threadId"],
            subject=headers.get("subject", "(no subject)"),
            from_email=from_email,
            from_name=from_name,
            to_email=headers.get("to", ""),
            date=headers.get("date", ""),
            body=self._extract_body(message.get("payload", {})),
            snippet=message.get("snippet", ""),
            labels=message.get("labelIds", []),
            internal_date_ms=int(message.get("internalDate", 0) or 0),
            rfc_message_id=headers.get("message-id"),
            references=headers.get("references"),
        )

    def _parse_email_address(self, address: str) -> tuple[str, str]:
        """
        Parse an email address header into name and email.

        Examples:
            "John Smith <john@example.com>" -> ("John Smith", "john@example.com")
            "john@example.com" -> ("", "john@example.com")
        """
        match = re.match(r'^"?([^"<]*)"?\s*<([^>]+)>$', address.strip())

        if match:
            return match.group(1).strip(), match.group(2).strip()

        return "", address.strip()

    def _extract_body(self, payload: dict) -> str:
        """
        Extract the plain text body from an email payload.

        Prefers text/plain parts (recursing into nested multiparts) and falls
        back to tag-stripped text/html.
        """
        body_data = payload.get("body", {}).get("data")
        if body_data:
            return _decode(body_data)

        parts = payload.get("parts", [])

        for part in parts:
            if part.get("mimeType") == "text/plain":
                data = part.get("body", {}).get("data")
                if data:
                    return _decode(data)

            if part.get("parts"):
                body = self._extract_body(part)
                if body:
                    return body

        for part in parts:
            if part.get("mimeType") == "text/html":
                data = part.get("body", {}).get("data")
                if data:
                    return re.sub(r"<[^>]+>", "", _decode(data))

        return ""


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def _reply_subject(subject: str) -> str:
    return subject if subject.lower().startswith("re:") else f"Re: {subject}"


def _references_for(email: EmailData) -> str | None:
    """References header: the original References plus the replied-to Message-ID."""
    if not email.rfc_message_id:
        return email.references
    if email.references:
        return f"{email.references} {email.rfc_message_id}"
    return email.rfc_message_id

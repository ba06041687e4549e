"""
Gmail label management for triage.

Two kinds of labels are managed here:
- Triage labels ("reply_needed", "review", "todo", "fyi"): one per thread,
  committed after classification.
- Tracking labels (e.g. "todo_forwarded"): idempotency markers that agents
  apply once their side effect has succeeded.

Labels are applied at thread level so every message in the
conversation carries them.
"""

import logging

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from inbox_triage.gmail.auth import get_gmail_service

logger = logging.getLogger(__name__)


class GmailLabelManager:
    """
    Manages Gmail labels for the triage workflow.

    Gmail labels have two parts:
    - name: Human-readable ("todo")
    - id: Internal ID used by API ("Label_123456789")

    This class handles the mapping, creating labels on first use.
    """

    # Colors help users identify triage labels at a glance
    LABEL_COLORS = {
        "reply_needed": {"backgroundColor": "#fb4c2f", "textColor": "#ffffff"},
        "review": {"backgroundColor": "#ffad47", "textColor": "#ffffff"},
        "todo": {"backgroundColor": "#16a765", "textColor": "#ffffff"},
        "fyi": {"backgroundColor": "#4986e7", "textColor": "#ffffff"},
    }

    def __init__(self, gmail_service: Resource | None = None) -> None:
        """
        Initialize the label manager.

        Args:
            gmail_service: Gmail API service. If None, will be auto-created.
        """
        self._service = gmail_service
        self._label_cache: dict[str, str] = {}  # name -> id mapping

    @property
    def service(self) -> Resource:
        """Get Gmail service, creating if needed."""
        if self._service is None:
            self._service = get_gmail_service()
        return self._service

    def ensure_labels_exist(self, label_names: list[str]) -> dict[str, str]:
        """
        Ensure labels exist in Gmail, creating any that are missing.

        Returns:
            Dictionary mapping label names to their IDs.
        """
        result = {}

        for name in label_names:
            label_id = self.get_label_id(name)

            if label_id is None:
                label_id = self._create_label(name)
                logger.info(f"Created label '{name}' with ID: {label_id}")

            result[name] = label_id

        return result

    def get_label_id(self, label_name: str) -> str | None:
        """
        Get the ID for a label by its name.

        Returns:
            The label ID, or None if not found.
        """
        if label_name in self._label_cache:
            return self._label_cache[label_name]

        try:
            response = self.service.users().labels().list(userId="me").execute()
        except HttpError as e:
            logger.error(f"Failed to list labels: {e}")
            raise

        for label in response.get("labels", []):
            self._label_cache[label["name"]] = label["id"]

        return self._label_cache.get(label_name)

    def _create_label(self, label_name: str) -> str:
        label_body = {
            "name": label_name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }

        if label_name in self.LABEL_COLORS:
            label_body["color"] = self.LABEL_COLORS[label_name]

        try:
            result = (
                self.service.users()
                .labels()
                .create(userId="me", body=label_body)
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to create label '{label_name}': {e}")
            raise

        label_id = result["id"]
        self._label_cache[label_name] = label_id
        return label_id

    def apply_label(self, thread_id: str, label_name: str) -> None:
        """
        Add a label to every message of a thread, creating the label if needed.

        Args:
            thread_id: The Gmail thread ID.
            label_name: The label name to add.
        """
        label_id = self.get_label_id(label_name) or self._create_label(label_name)

        try:
            self.service.users().threads().modify(
                userId="me",
                id=thread_id,
                body={"addLabelIds": [label_id]},
            ).execute()
        except HttpError as e:
            logger.error(f"Failed to add label '{label_name}' to thread {thread_id}: {e}")
            raise

        logger.debug(f"Added label '{label_name}' to thread {thread_id}")

    def has_label(self, thread_id: str, label_name: str) -> bool:
        """
        Check if any message in a thread carries a label.

        Always asks Gmail; nothing about threads is cached.
        """
        label_id = self.get_label_id(label_name)

        if label_id is None:
            return False

        try:
            thread = (
                self.service.users()
                .threads()
                .get(userId="me", id=thread_id, format="minimal")
                .execute()
            )
        except HttpError as e:
            logger.error(f"Failed to get labels for thread {thread_id}: {e}")
            raise

        return any(
            label_id in message.get("labelIds", [])
            for message in thread.get("messages", [])
        )

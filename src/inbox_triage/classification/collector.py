"""Snapshot unprocessed inbox threads into classifiable items."""

import logging
from datetime import datetime, timezone

from inbox_triage.classification.models import KNOWN_LABELS, ClassifiableItem
from inbox_triage.gmail.client import GmailClient, MailThread
from inbox_triage.security.sanitization import sanitize_for_prompt

logger = logging.getLogger(__name__)

MAX_SUBJECT_CHARS = 200
MAX_SENDER_CHARS = 200


def unprocessed_query(labels: tuple[str, ...] = KNOWN_LABELS) -> str:
    """Gmail query for inbox threads that carry none of the triage labels."""
    exclusions = " ".join(f"-label:{label}" for label in labels)
    return f"in:inbox {exclusions}"


def to_item(thread: MailThread, excerpt_chars: int, now: datetime) -> ClassifiableItem | None:
    """Build a ClassifiableItem from a thread's latest message."""
    latest = thread.latest
    if latest is None:
        return None

    age_days = 0
    if latest.internal_date_ms:
        received = datetime.fromtimestamp(latest.internal_date_ms / 1000, tz=timezone.utc)
        age_days = max((now - received).days, 0)

    sender = f"{latest.from_name} <{latest.from_email}>" if latest.from_name else latest.from_email

    return ClassifiableItem(
        id=latest.message_id,
        thread_id=thread.thread_id,
        subject=sanitize_for_prompt(latest.subject, max_length=MAX_SUBJECT_CHARS),
        sender=sanitize_for_prompt(sender, max_length=MAX_SENDER_CHARS),
        age_days=age_days,
        body_excerpt=sanitize_for_prompt(latest.body or latest.snippet, max_length=excerpt_chars),
    )


def collect_unprocessed(
    mailbox: GmailClient,
    max_threads: int,
    excerpt_chars: int,
    labels: tuple[str, ...] = KNOWN_LABELS,
    now: datetime | None = None,
) -> list[ClassifiableItem]:
    """
    Find inbox threads with no triage label and snapshot them.

    A thread that cannot be fetched is logged and left for the next run.
    """
    now = now or datetime.now(timezone.utc)
    thread_ids = mailbox.search(unprocessed_query(labels), max_results=max_threads)

    items = []
    for thread_id in thread_ids:
        try:
            thread = mailbox.get_thread(thread_id)
        except Exception as e:
            logger.error(f"Skipping thread {thread_id}, fetch failed: {e}")
            continue

        item = to_item(thread, excerpt_chars, now)
        if item is not None:
            items.append(item)

    logger.info(f"Collected {len(items)} unprocessed thread(s)")
    return items

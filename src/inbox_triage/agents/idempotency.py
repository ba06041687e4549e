"""
Idempotency trackers.

Each agent that performs a side effect decides "already handled?" from
state visible in the mailbox, never from process memory. ``mark_done``
changes exactly the state ``is_done`` reads, and only runs after the side
effect succeeded; a failed item therefore stays discoverable and is
retried by the next scan.

Undoing a marker by hand (moving a thread back to the inbox, removing a
tracking label) makes the thread look unprocessed again.
"""

import logging
from collections.abc import Callable
from typing import Protocol

from inbox_triage.agents.base import HookResult, HookStatus, ScanContext, ScanTally
from inbox_triage.gmail.client import GmailClient
from inbox_triage.gmail.labels import GmailLabelManager

logger = logging.getLogger(__name__)


class IdempotencyTracker(Protocol):
    """Predicate/action pair over externally observable thread state."""

    def is_done(self, thread_id: str) -> bool: ...

    def mark_done(self, thread_id: str) -> None: ...

    def describe(self) -> str: ...


class LabelMarkerTracker:
    """Done when the thread carries a tracking label."""

    def __init__(self, labels: GmailLabelManager, marker: str) -> None:
        self.labels = labels
        self.marker = marker

    def is_done(self, thread_id: str) -> bool:
        return self.labels.has_label(thread_id, self.marker)

    def mark_done(self, thread_id: str) -> None:
        self.labels.apply_label(thread_id, self.marker)

    def describe(self) -> str:
        return f"label:{self.marker}"


class ArchiveTracker:
    """Done when the thread has left the inbox."""

    def __init__(self, mailbox: GmailClient) -> None:
        self.mailbox = mailbox

    def is_done(self, thread_id: str) -> bool:
        return not self.mailbox.is_active(thread_id)

    def mark_done(self, thread_id: str) -> None:
        self.mailbox.archive(thread_id)

    def describe(self) -> str:
        return "archived"


class DraftExistsTracker:
    """Done when the thread already holds a draft; creating the draft is the marker."""

    def __init__(self, mailbox: GmailClient) -> None:
        self.mailbox = mailbox

    def is_done(self, thread_id: str) -> bool:
        return self.mailbox.has_draft(thread_id)

    def mark_done(self, thread_id: str) -> None:
        pass

    def describe(self) -> str:
        return "draft-exists"


def process_once(
    tracker: IdempotencyTracker,
    thread_id: str,
    action: Callable[[], HookResult],
    dry_run: bool,
    describe: str,
    log: logging.LoggerAdapter | logging.Logger = logger,
) -> HookResult:
    """
    Run a side effect at most once per thread, as observed in the mailbox.

    Args:
        tracker: Idempotency tracker for the agent.
        thread_id: Thread to process.
        action: Performs the side effect; returns OK on verified success.
        dry_run: Log what would happen instead of acting.
        describe: Human-readable description of the side effect.
        log: Logger for progress lines.

    Returns:
        SKIP when already done, the action's result otherwise. An exception
        from the action is converted to ERROR and the thread is not marked.
    """
    try:
        done = tracker.is_done(thread_id)
    except Exception as e:
        log.error(f"Could not check thread {thread_id} ({tracker.describe()}): {e}")
        return HookResult.error(str(e))

    if done:
        log.debug(f"Thread {thread_id} already handled ({tracker.describe()})")
        return HookResult.skip("already-done")

    if dry_run:
        log.info(f"[dry-run] Would {describe} and mark thread {thread_id} ({tracker.describe()})")
        return HookResult.ok("dry-run")

    try:
        result = action()
    except Exception as e:
        log.error(f"Failed to {describe} for thread {thread_id}: {e}")
        return HookResult.error(str(e))

    if result.status != HookStatus.OK:
        return result

    try:
        tracker.mark_done(thread_id)
    except Exception as e:
        log.error(f"Side effect done but marking thread {thread_id} failed: {e}")
        return HookResult.error(f"mark-done failed: {e}")

    return result


def scan_threads(
    ctx: ScanContext,
    query: str,
    handle: Callable[[str], HookResult],
    max_results: int = 50,
) -> HookResult:
    """
    Re-discover candidate threads with a mailbox query and handle each one.

    Failures are isolated per thread. The returned result carries a
    ``ScanTally`` as its info.
    """
    try:
        thread_ids = ctx.services.mailbox.search(query, max_results)
    except Exception as e:
        ctx.logger.error(f"Search {query!r} failed: {e}")
        return HookResult.error(f"search failed: {e}")

    tally = ScanTally()
    for thread_id in thread_ids:
        try:
            result = handle(thread_id)
        except Exception as e:
            ctx.logger.error(f"Thread {thread_id} failed: {e}")
            result = HookResult.error(str(e))
        tally.record(result)

    if thread_ids:
        ctx.logger.info(f"Scanned {len(thread_ids)} thread(s) for {query!r}: {tally.as_dict()}")
    return tally.as_result()

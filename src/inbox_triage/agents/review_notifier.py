"""
Review notifier.

Posts a webhook notification for every ``review`` thread. The agent's own
``webhook_url`` takes precedence over the global notification webhook.
Notified threads get a tracking label; a failed delivery leaves the thread
unmarked so the next scan retries it.
"""

from inbox_triage.agents.base import (
    AgentHooks,
    ExecutionContext,
    HookResult,
    ScanContext,
)
from inbox_triage.agents.idempotency import LabelMarkerTracker, process_once, scan_threads
from inbox_triage.agents.registry import AgentRegistry
from inbox_triage.classification.models import REASON_OK, TriageLabel
from inbox_triage.gmail.client import EmailData
from inbox_triage.notify.webhook import WebhookNotifier

NAME = "review_notifier"
LABEL = TriageLabel.REVIEW.value
MARKER_LABEL = "review_notified"

THREAD_URL = "https://mail.google.com/mail/u/0/#all/{thread_id}"


def format_notification(email: EmailData, reason: str | None = None) -> dict:
    sender = f"{email.from_name} <{email.from_email}>" if email.from_name else email.from_email
    lines = [
        f"*Review needed:* {email.subject or '(no subject)'}",
        f"From: {sender}",
    ]
    if reason:
        lines.append(f"Why: {reason}")
    lines.append(THREAD_URL.format(thread_id=email.thread_id))
    return {"text": "\n".join(lines)}


def _notifier_for(ctx: ExecutionContext | ScanContext) -> WebhookNotifier:
    url = ctx.config.get("webhook_url")
    if url:
        return WebhookNotifier(url)
    return ctx.services.notifier


def notify(
    ctx: ExecutionContext | ScanContext,
    notifier: WebhookNotifier,
    thread_id: str,
    reason: str | None = None,
) -> HookResult:
    thread = ctx.services.mailbox.get_thread(thread_id)
    latest = thread.latest
    if latest is None:
        return HookResult.skip("empty-thread")

    if not notifier.send(format_notification(latest, reason)):
        return HookResult.retry("delivery-failed")
    return HookResult.ok()


def _process(
    ctx: ExecutionContext | ScanContext,
    notifier: WebhookNotifier,
    thread_id: str,
    reason: str | None = None,
) -> HookResult:
    return process_once(
        LabelMarkerTracker(ctx.services.labels, MARKER_LABEL),
        thread_id,
        lambda: notify(ctx, notifier, thread_id, reason),
        ctx.dry_run,
        "send a review notification",
        ctx.logger,
    )


def on_label(ctx: ExecutionContext) -> HookResult:
    notifier = _notifier_for(ctx)
    if not notifier.configured:
        return HookResult.error("no notification webhook configured")
    reason = ctx.reason if ctx.reason != REASON_OK else None
    return _process(ctx, notifier, ctx.thread_id, reason)


def post_label(ctx: ScanContext) -> HookResult:
    """Notify for review threads that carry no tracking label yet."""
    notifier = _notifier_for(ctx)
    if not notifier.configured:
        return HookResult.error("no notification webhook configured")

    return scan_threads(
        ctx,
        f"label:{ctx.label} -label:{MARKER_LABEL}",
        lambda thread_id: _process(ctx, notifier, thread_id),
        max_results=int(ctx.config.get("max_per_run", 25)),
    )


def register(registry: AgentRegistry) -> None:
    registry.register(LABEL, NAME, AgentHooks(on_label=on_label, post_label=post_label))

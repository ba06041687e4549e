"""
Todo forwarder.

Forwards the latest message of every ``todo`` thread to a task inbox
(``agents.todo_forwarder.forward_to``). Forwarded threads get a tracking
label so they are forwarded once.
"""

from inbox_triage.agents.base import (
    AgentHooks,
    AgentServices,
    ExecutionContext,
    HookResult,
    ScanContext,
)
from inbox_triage.agents.idempotency import LabelMarkerTracker, process_once, scan_threads
from inbox_triage.agents.registry import AgentRegistry
from inbox_triage.classification.models import TriageLabel
from inbox_triage.errors import ConfigurationError

NAME = "todo_forwarder"
LABEL = TriageLabel.TODO.value
MARKER_LABEL = "todo_forwarded"
DEFAULT_NOTE = "Forwarded automatically: this email was triaged as a to-do."


def forward_latest(services: AgentServices, thread_id: str, to: str, note: str) -> HookResult:
    thread = services.mailbox.get_thread(thread_id)
    latest = thread.latest
    if latest is None:
        return HookResult.skip("empty-thread")

    message_id = services.mailbox.forward(latest, to, note)
    return HookResult.ok(message_id)


def _process(ctx: ExecutionContext | ScanContext, thread_id: str, to: str) -> HookResult:
    marker = ctx.config.get("marker_label", MARKER_LABEL)
    return process_once(
        LabelMarkerTracker(ctx.services.labels, marker),
        thread_id,
        lambda: forward_latest(
            ctx.services, thread_id, to, ctx.config.get("note", DEFAULT_NOTE)
        ),
        ctx.dry_run,
        f"forward to {to}",
        ctx.logger,
    )


def on_label(ctx: ExecutionContext) -> HookResult:
    try:
        to = ctx.config.require("forward_to")
    except ConfigurationError as e:
        return HookResult.error(str(e))
    return _process(ctx, ctx.thread_id, to)


def post_label(ctx: ScanContext) -> HookResult:
    """Forward todo threads that carry no tracking label yet."""
    try:
        to = ctx.config.require("forward_to")
    except ConfigurationError as e:
        return HookResult.error(str(e))

    marker = ctx.config.get("marker_label", MARKER_LABEL)
    return scan_threads(
        ctx,
        f"label:{ctx.label} -label:{marker}",
        lambda thread_id: _process(ctx, thread_id, to),
        max_results=int(ctx.config.get("max_per_run", 25)),
    )


def register(registry: AgentRegistry) -> None:
    registry.register(LABEL, NAME, AgentHooks(on_label=on_label, post_label=post_label))

"""
Reply drafter.

Drafts a reply for every ``reply_needed`` thread, using the global and
agent-specific knowledge bundles. A draft in the thread is the marker: a
thread that already has one is never drafted again. Once the owner sends
it, the latest message carries the ``SENT`` label and the thread is skipped
from then on.
"""

import logging
import re

from inbox_triage.agents.base import (
    AgentHooks,
    AgentOptions,
    AgentServices,
    ExecutionContext,
    HookResult,
    ScanContext,
)
from inbox_triage.agents.idempotency import DraftExistsTracker, process_once, scan_threads
from inbox_triage.agents.registry import AgentRegistry
from inbox_triage.classification.models import TriageLabel
from inbox_triage.knowledge.bundle import assemble
from inbox_triage.llm.retry import default_policy, with_retry
from inbox_triage.prompts.templates import (
    DRAFT_REPLY_INSTRUCTIONS,
    DRAFT_REPLY_TASK,
    format_thread_for_prompt,
)
from inbox_triage.security.sanitization import redact_sensitive_for_logging
from inbox_triage.user_config import AgentConfig, append_signature

logger = logging.getLogger(__name__)

NAME = "reply_drafter"
LABEL = TriageLabel.REPLY_NEEDED.value

# Sign-off patterns to remove (LLM sometimes adds these despite instructions)
SIGN_OFF_PATTERNS = [
    r"^(Best regards?|Kind regards?|Warm regards?|Regards),?\s*$",
    r"^(Sincerely|Yours sincerely|Yours truly),?\s*$",
    r"^(Thanks?|Thank you|Many thanks),?\s*$",
    r"^(Cheers|All the best|Best wishes),?\s*$",
]


def cleanup_draft(draft: str) -> str:
    """
    Clean up an LLM-generated draft.

    Removes trailing sign-off lines and duplicate paragraphs.
    """
    if not draft:
        return ""

    lines = draft.strip().split("\n")
    while lines:
        last_line = lines[-1].strip()
        if not last_line:
            lines.pop()
            continue
        if any(re.match(p, last_line, re.IGNORECASE) for p in SIGN_OFF_PATTERNS):
            logger.debug(f"Removing sign-off line: {last_line}")
            lines.pop()
        else:
            break

    seen = set()
    paragraphs = []
    for para in re.split(r"\n\n+", "\n".join(lines).strip()):
        normalized = " ".join(para.lower().split())
        if normalized and normalized not in seen:
            seen.add(normalized)
            paragraphs.append(para)

    return "\n\n".join(paragraphs)


def draft_reply(
    services: AgentServices,
    config: AgentConfig,
    thread_id: str,
) -> HookResult:
    """Generate a reply for the latest message of a thread and save it as a draft."""
    mailbox = services.mailbox
    thread = mailbox.get_thread(thread_id)
    latest = thread.latest
    if latest is None:
        return HookResult.skip("empty-thread")

    user_email = config.get("user_email", "")
    if latest.is_sent or (user_email and latest.from_email.lower() == user_email.lower()):
        return HookResult.skip("last-message-is-ours")

    if mailbox.should_skip_sender(latest.from_email) or mailbox.is_auto_reply(
        latest.subject, latest.body
    ):
        return HookResult.skip("automated-sender")

    logger.info(f"Drafting reply to {redact_sensitive_for_logging(latest.from_email)} in {thread_id}")

    prompt = assemble(
        DRAFT_REPLY_INSTRUCTIONS.format(user_email=user_email or "the user"),
        services.global_knowledge,
        services.specific_knowledge(config.knowledge),
        DRAFT_REPLY_TASK.format(
            thread_text=format_thread_for_prompt(
                thread.messages, max_body_chars=int(config.get("max_body_chars", 4000))
            )
        ),
    )

    text = with_retry(
        lambda: services.llm.generate(prompt, model_id=config.get("model")),
        default_policy(),
        f"draft reply for {thread_id}",
    )
    draft = cleanup_draft(text)
    if not draft:
        return HookResult.error("model returned an empty draft")

    body = append_signature(draft, config.get("signature"))
    draft_id = mailbox.create_draft(thread_id, latest, body)
    return HookResult.ok(draft_id)


def on_label(ctx: ExecutionContext) -> HookResult:
    return process_once(
        DraftExistsTracker(ctx.services.mailbox),
        ctx.thread_id,
        lambda: draft_reply(ctx.services, ctx.config, ctx.thread_id),
        ctx.dry_run,
        "draft a reply",
        ctx.logger,
    )


def post_label(ctx: ScanContext) -> HookResult:
    """Draft replies for labelled inbox threads that still have none."""
    tracker = DraftExistsTracker(ctx.services.mailbox)
    return scan_threads(
        ctx,
        f"in:inbox label:{ctx.label}",
        lambda thread_id: process_once(
            tracker,
            thread_id,
            lambda: draft_reply(ctx.services, ctx.config, thread_id),
            ctx.dry_run,
            "draft a reply",
            ctx.logger,
        ),
        max_results=int(ctx.config.get("max_per_run", 25)),
    )


def register(registry: AgentRegistry) -> None:
    registry.register(
        LABEL,
        NAME,
        AgentHooks(on_label=on_label, post_label=post_label),
        AgentOptions(timeout_ms_hint=60000),
    )

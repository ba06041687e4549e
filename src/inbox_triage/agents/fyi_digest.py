"""
FYI digest.

Once per run, summarizes the ``fyi`` threads still in the inbox into a
single notification and archives them. Archiving is the marker: a thread
that left the inbox is never digested again, and threads are only archived
after the digest was delivered.
"""

from inbox_triage.agents.base import (
    AgentHooks,
    HookResult,
    ScanContext,
    ScanTally,
)
from inbox_triage.agents.idempotency import ArchiveTracker, process_once
from inbox_triage.agents.registry import AgentRegistry
from inbox_triage.classification.models import TriageLabel
from inbox_triage.gmail.client import EmailData
from inbox_triage.knowledge.bundle import assemble
from inbox_triage.llm.retry import default_policy, with_retry
from inbox_triage.prompts.templates import (
    FYI_DIGEST_INSTRUCTIONS,
    FYI_DIGEST_TASK,
    format_digest_entry,
)

NAME = "fyi_digest"
LABEL = TriageLabel.FYI.value


def build_digest_prompt(ctx: ScanContext, emails: list[EmailData]) -> str:
    entries = "\n".join(format_digest_entry(i, email) for i, email in enumerate(emails, 1))
    return assemble(
        FYI_DIGEST_INSTRUCTIONS,
        ctx.services.global_knowledge,
        ctx.services.specific_knowledge(ctx.config.knowledge),
        FYI_DIGEST_TASK.format(emails_text=entries),
    )


def post_label(ctx: ScanContext) -> HookResult:
    mailbox = ctx.services.mailbox
    notifier = ctx.services.notifier
    if not notifier.configured:
        return HookResult.error("no notification webhook configured")

    query = f"in:inbox label:{ctx.label}"
    try:
        thread_ids = mailbox.search(query, int(ctx.config.get("max_per_run", 25)))
    except Exception as e:
        ctx.logger.error(f"Search {query!r} failed: {e}")
        return HookResult.error(f"search failed: {e}")

    tally = ScanTally()
    emails: list[EmailData] = []
    for thread_id in thread_ids:
        try:
            latest = mailbox.get_thread(thread_id).latest
        except Exception as e:
            ctx.logger.error(f"Could not fetch thread {thread_id}: {e}")
            tally.record(HookResult.error(str(e)))
            continue
        if latest is None:
            tally.record(HookResult.skip("empty-thread"))
            continue
        emails.append(latest)

    if not emails:
        return tally.as_result()

    if ctx.dry_run:
        ctx.logger.info(f"[dry-run] Would send a digest of {len(emails)} email(s) and archive them")
        for _ in emails:
            tally.record(HookResult.ok("dry-run"))
        return tally.as_result()

    prompt = build_digest_prompt(ctx, emails)
    digest = with_retry(
        lambda: ctx.services.llm.generate(prompt, model_id=ctx.config.get("model")),
        default_policy(),
        "fyi digest",
    )
    if not digest:
        return HookResult.error("model returned an empty digest")

    text = f"*FYI digest* ({len(emails)} email(s))\n\n{digest}"
    if not notifier.send({"text": text}):
        # Nothing archived; the same threads are digested next run
        return HookResult.retry("delivery-failed")

    tracker = ArchiveTracker(mailbox)
    for email in emails:
        result = process_once(
            tracker,
            email.thread_id,
            lambda: HookResult.ok(),
            False,
            "archive after digest",
            ctx.logger,
        )
        tally.record(result)

    ctx.logger.info(f"Digest sent for {len(emails)} email(s): {tally.as_dict()}")
    return tally.as_result()


def register(registry: AgentRegistry) -> None:
    registry.register(LABEL, NAME, AgentHooks(post_label=post_label))

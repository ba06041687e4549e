"""
Dual-hook dispatcher.

Runs registered agents after classification, in two phases:

Phase A (labeling): for each classified item, commit its label, then call
every enabled ``on_label`` hook registered for that label, in registration
order.

Phase B (post-label scan): once all items are labeled, call every enabled
``post_label`` hook exactly once. Each hook finds its own candidates in the
mailbox, which also picks up items Phase A missed in earlier runs.

Every hook call is isolated: exceptions become ``HookResult.error`` and
never stop later hooks or items. There is no retry here; an item that
failed stays "not done" and the next scheduled run picks it up again.

The dry-run flag gates the label commit and is passed unchanged to every
hook, which must then only log what it would do.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from inbox_triage.agents.base import (
    AgentRegistration,
    AgentServices,
    ExecutionContext,
    HookResult,
    HookStatus,
    RunWhen,
    ScanContext,
    ScanTally,
)
from inbox_triage.agents.registry import AgentRegistry
from inbox_triage.classification.models import ClassificationResult
from inbox_triage.user_config import AgentConfig

logger = logging.getLogger(__name__)


class AgentLogAdapter(logging.LoggerAdapter):
    """Prefixes hook log lines with the agent name (and thread, when known)."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        agent = self.extra.get("agent", "?")
        thread_id = self.extra.get("thread_id")
        prefix = f"[{agent}:{thread_id}]" if thread_id else f"[{agent}]"
        return f"{prefix} {msg}", kwargs


@dataclass
class Tally:
    """Hook outcome counts, aggregated from statuses only."""

    processed: int = 0
    skipped: int = 0
    retries: int = 0
    errors: int = 0

    def record(self, status: HookStatus) -> None:
        if status == HookStatus.OK:
            self.processed += 1
        elif status == HookStatus.SKIP:
            self.skipped += 1
        elif status == HookStatus.RETRY:
            self.retries += 1
        else:
            self.errors += 1

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "retries": self.retries,
            "errors": self.errors,
        }


@dataclass
class RunReport:
    """Per-run aggregate counts for operators."""

    dry_run: bool = False
    classified: int = 0
    labeled: int = 0
    unlabeled: int = 0
    label_errors: int = 0
    on_label: Tally = field(default_factory=Tally)
    post_label: Tally = field(default_factory=Tally)
    scans: dict[str, dict[str, int]] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "classified": self.classified,
            "labeled": self.labeled,
            "unlabeled": self.unlabeled,
            "label_errors": self.label_errors,
            "on_label": self.on_label.as_dict(),
            "post_label": self.post_label.as_dict(),
            "scans": dict(self.scans),
        }


class Dispatcher:
    """Commits labels and runs agent hooks for one triage run."""

    def __init__(
        self,
        registry: AgentRegistry,
        services: AgentServices,
        agent_configs: dict[str, AgentConfig] | None = None,
        dry_run: bool = False,
    ) -> None:
        """
        Args:
            registry: Populated agent registry (not modified here).
            services: Collaborators passed to hooks.
            agent_configs: Per-agent configuration resolved for this run.
            dry_run: Global dry-run flag.
        """
        self.registry = registry
        self.services = services
        self.agent_configs = agent_configs or {}
        self.dry_run = dry_run

    def run(self, results: list[ClassificationResult]) -> RunReport:
        """Phase A over all results, then Phase B."""
        report = RunReport(dry_run=self.dry_run, classified=len(results))
        self.label_items(results, report)
        self.run_post_label(report)

        logger.info(
            f"Run complete: labeled={report.labeled} unlabeled={report.unlabeled} "
            f"label_errors={report.label_errors} on_label={report.on_label.as_dict()} "
            f"post_label={report.post_label.as_dict()}"
        )
        return report

    # ------------------------------------------------------------------
    # Phase A
    # ------------------------------------------------------------------

    def label_items(self, results: list[ClassificationResult], report: RunReport) -> None:
        """Commit each label and run the on_label hooks for it, item by item."""
        for result in results:
            if result.label is None:
                report.unlabeled += 1
                logger.info(f"Thread {result.thread_id}: no label ({result.reason})")
                continue

            if not self._commit_label(result):
                report.label_errors += 1
                continue
            report.labeled += 1

            for registration in self.registry.get_agents(result.label):
                if not registration.enabled or registration.hooks.on_label is None:
                    continue

                config = self._config_for(registration.name)
                ctx = ExecutionContext(
                    label=result.label,
                    reason=result.reason,
                    item_id=result.id,
                    thread_id=result.thread_id,
                    config=config,
                    dry_run=self.dry_run or config.dry_run_override,
                    logger=self._logger_for(registration, result.thread_id),
                    services=self.services,
                )
                hook_result = self.invoke_hook(registration, registration.hooks.on_label, ctx)
                report.on_label.record(hook_result.status)

    def _commit_label(self, result: ClassificationResult) -> bool:
        if self.dry_run:
            logger.info(
                f"[dry-run] Would apply label '{result.label}' to thread {result.thread_id} "
                f"({result.reason})"
            )
            return True

        try:
            self.services.labels.apply_label(result.thread_id, result.label)
        except Exception as e:
            # Thread stays unlabelled and is collected again next run
            logger.error(f"Failed to label thread {result.thread_id} as '{result.label}': {e}")
            return False

        logger.info(f"Labeled thread {result.thread_id} as '{result.label}' ({result.reason})")
        return True

    # ------------------------------------------------------------------
    # Phase B
    # ------------------------------------------------------------------

    def run_post_label(self, report: RunReport) -> None:
        """Run each enabled post_label hook once, label by label, in registration order."""
        for label in self.registry.labels:
            for registration in self.registry.get_agents(label):
                if not registration.enabled or registration.hooks.post_label is None:
                    continue
                if registration.options.run_when != RunWhen.AFTER_LABELING:
                    continue
                self._run_scan(registration, report)

    def run_agent(self, name: str) -> RunReport:
        """
        Run one agent's post_label hook(s) on demand.

        Used for agents whose scan is scheduled separately from the
        triage run. Disabled registrations are still skipped.

        Raises:
            KeyError: No agent with that name is registered.
        """
        registrations = self.registry.find(name)
        if not registrations:
            raise KeyError(name)

        report = RunReport(dry_run=self.dry_run)
        for registration in registrations:
            if registration.hooks.post_label is None:
                continue
            if not registration.enabled:
                logger.info(f"Agent '{name}' is disabled; not running")
                continue
            self._run_scan(registration, report)
        return report

    def _run_scan(self, registration: AgentRegistration, report: RunReport) -> HookResult:
        config = self._config_for(registration.name)
        ctx = ScanContext(
            label=registration.label,
            config=config,
            dry_run=self.dry_run or config.dry_run_override,
            logger=self._logger_for(registration),
            services=self.services,
        )
        result = self.invoke_hook(registration, registration.hooks.post_label, ctx)
        report.post_label.record(result.status)

        key = f"{registration.name}:{registration.label}"
        if isinstance(result.info, ScanTally):
            report.scans[key] = result.info.as_dict()
        else:
            report.scans[key] = {"processed": 0, "skipped": 0, "errors": 0}
        return result

    # ------------------------------------------------------------------
    # Hook boundary
    # ------------------------------------------------------------------

    def invoke_hook(self, registration: AgentRegistration, hook: Any, ctx: Any) -> HookResult:
        """
        Call a hook, converting any exception or bad return value to ERROR.

        Overrunning ``timeout_ms_hint`` is logged; the hook is not interrupted.
        """
        started = time.monotonic()
        try:
            result = hook(ctx)
        except Exception as e:
            logger.exception(f"Agent '{registration.name}' raised: {e}")
            result = HookResult.error(f"{type(e).__name__}: {e}")

        if not isinstance(result, HookResult):
            logger.error(
                f"Agent '{registration.name}' returned {type(result).__name__}, expected HookResult"
            )
            result = HookResult.error("invalid hook result")

        elapsed_ms = (time.monotonic() - started) * 1000
        if elapsed_ms > registration.options.timeout_ms_hint:
            logger.warning(
                f"Agent '{registration.name}' took {elapsed_ms:.0f}ms "
                f"(hint: {registration.options.timeout_ms_hint}ms)"
            )

        if result.status == HookStatus.ERROR:
            logger.error(f"Agent '{registration.name}' ({registration.label}): error: {result.info}")
        else:
            logger.debug(
                f"Agent '{registration.name}' ({registration.label}): {result.status.value}"
            )
        return result

    def _config_for(self, name: str) -> AgentConfig:
        return self.agent_configs.get(name) or AgentConfig(name)

    def _logger_for(
        self, registration: AgentRegistration, thread_id: str | None = None
    ) -> AgentLogAdapter:
        return AgentLogAdapter(
            logging.getLogger(f"inbox_triage.agents.{registration.name}"),
            {"agent": registration.name, "thread_id": thread_id},
        )

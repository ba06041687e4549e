"""Hook results, registrations and execution contexts for triage agents."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from inbox_triage.gmail.client import GmailClient
from inbox_triage.gmail.labels import GmailLabelManager
from inbox_triage.knowledge.bundle import KnowledgeBundle, KnowledgeStore, load_bundle
from inbox_triage.llm.service import LLMService
from inbox_triage.notify.webhook import WebhookNotifier
from inbox_triage.user_config import AgentConfig, KnowledgeRef


class HookStatus(Enum):
    """Status of a hook invocation."""

    OK = "ok"
    SKIP = "skip"
    RETRY = "retry"
    ERROR = "error"


@dataclass
class HookResult:
    """
    Tagged result returned by every hook.

    Only ``status`` drives the dispatcher's bookkeeping; ``info`` is for
    logs and run reports.
    """

    status: HookStatus
    info: Any = None

    @classmethod
    def ok(cls, info: Any = None) -> "HookResult":
        return cls(status=HookStatus.OK, info=info)

    @classmethod
    def skip(cls, info: Any = None) -> "HookResult":
        return cls(status=HookStatus.SKIP, info=info)

    @classmethod
    def retry(cls, info: Any = None) -> "HookResult":
        """Side effect deferred; the item stays discoverable for the next run."""
        return cls(status=HookStatus.RETRY, info=info)

    @classmethod
    def error(cls, info: Any = None) -> "HookResult":
        return cls(status=HookStatus.ERROR, info=info)


@dataclass
class ScanTally:
    """Per-item outcome counts of a post-label scan."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0

    def record(self, result: HookResult) -> None:
        if result.status == HookStatus.OK:
            self.processed += 1
        elif result.status == HookStatus.ERROR:
            self.errors += 1
        else:
            self.skipped += 1

    def as_result(self) -> HookResult:
        """Summarize the scan: error if any item failed, skip if nothing was found."""
        if self.errors:
            return HookResult.error(self)
        if not self.processed and not self.skipped:
            return HookResult.skip(self)
        return HookResult.ok(self)

    def as_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "skipped": self.skipped, "errors": self.errors}


class RunWhen(Enum):
    """When the dispatcher runs an agent's post-label hook."""

    AFTER_LABELING = "after_labeling"  # Phase B of every run
    SCHEDULED = "scheduled"  # Only when triggered explicitly (run_agent)


@dataclass
class AgentServices:
    """External collaborators available to hooks."""

    mailbox: GmailClient
    labels: GmailLabelManager
    llm: LLMService
    notifier: WebhookNotifier
    knowledge_store: KnowledgeStore | None = None
    global_knowledge: KnowledgeBundle = field(default_factory=KnowledgeBundle.empty)
    capacity_tokens: int = 128000
    max_knowledge_docs: int = 10
    _knowledge_cache: dict[KnowledgeRef, KnowledgeBundle] = field(default_factory=dict, repr=False)

    def specific_knowledge(self, ref: KnowledgeRef) -> KnowledgeBundle:
        """
        Load a feature-specific bundle; unconfigured refs give an empty bundle.

        Bundles are fetched once per run and reused across items.
        """
        if ref not in self._knowledge_cache:
            self._knowledge_cache[ref] = load_bundle(
                self.knowledge_store, ref, self.max_knowledge_docs, self.capacity_tokens
            )
        return self._knowledge_cache[ref]


@dataclass
class ExecutionContext:
    """Per-item context handed to ``on_label`` hooks."""

    label: str
    reason: str
    item_id: str
    thread_id: str
    config: AgentConfig
    dry_run: bool
    logger: logging.LoggerAdapter
    services: AgentServices


@dataclass
class ScanContext:
    """Context handed to ``post_label`` hooks; no item, the hook finds its own."""

    label: str
    config: AgentConfig
    dry_run: bool
    logger: logging.LoggerAdapter
    services: AgentServices


OnLabelHook = Callable[[ExecutionContext], HookResult]
PostLabelHook = Callable[[ScanContext], HookResult]


@dataclass(frozen=True)
class AgentHooks:
    """The hooks an agent exposes. At least one must be set."""

    on_label: OnLabelHook | None = None
    post_label: PostLabelHook | None = None


@dataclass(frozen=True)
class AgentOptions:
    """Execution metadata for a registration."""

    run_when: RunWhen = RunWhen.AFTER_LABELING
    timeout_ms_hint: int = 30000
    enabled: bool = True


@dataclass(frozen=True)
class AgentRegistration:
    """One agent registered for one label."""

    label: str
    name: str
    hooks: AgentHooks
    options: AgentOptions = field(default_factory=AgentOptions)

    @property
    def enabled(self) -> bool:
        return self.options.enabled

    def describe(self) -> dict[str, Any]:
        """Diagnostic summary (used by the /agents endpoint)."""
        return {
            "label": self.label,
            "name": self.name,
            "on_label": self.hooks.on_label is not None,
            "post_label": self.hooks.post_label is not None,
            "run_when": self.options.run_when.value,
            "timeout_ms_hint": self.options.timeout_ms_hint,
            "enabled": self.options.enabled,
        }

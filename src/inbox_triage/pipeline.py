"""
One triage run, end to end.

Flow:
1. Load the global and classification knowledge bundles
2. Collect inbox threads that carry no triage label
3. Classify them in batches
4. Commit labels and run the agents (dispatcher Phase A and Phase B)

Each run reads mailbox state from scratch; nothing is carried over between
runs except what is visible in the mailbox itself.
"""

import logging

from inbox_triage.agents import (
    AgentRegistry,
    AgentServices,
    Dispatcher,
    RunReport,
    build_default_registry,
)
from inbox_triage.classification.batcher import ClassificationBatcher
from inbox_triage.classification.collector import collect_unprocessed
from inbox_triage.classification.models import KNOWN_LABELS, ClassificationResult
from inbox_triage.config import Settings, settings
from inbox_triage.gmail.client import GmailClient
from inbox_triage.gmail.labels import GmailLabelManager
from inbox_triage.knowledge.bundle import KnowledgeBundle, KnowledgeStore, load_bundle
from inbox_triage.llm.retry import default_policy
from inbox_triage.llm.service import LLMService
from inbox_triage.notify.webhook import WebhookNotifier
from inbox_triage.user_config import (
    KnowledgeRef,
    UserConfig,
    load_user_config,
    resolve_agent_configs,
)

logger = logging.getLogger(__name__)


class TriageRun:
    """Wires the collaborators of a triage run together."""

    def __init__(
        self,
        mailbox: GmailClient,
        labels: GmailLabelManager,
        llm: LLMService,
        notifier: WebhookNotifier,
        registry: AgentRegistry,
        user_config: UserConfig,
        knowledge_store: KnowledgeStore | None = None,
        run_settings: Settings = settings,
    ) -> None:
        self.mailbox = mailbox
        self.labels = labels
        self.llm = llm
        self.notifier = notifier
        self.registry = registry
        self.user_config = user_config
        self.knowledge_store = knowledge_store
        self.settings = run_settings

    def execute(self, dry_run: bool | None = None) -> RunReport:
        """
        Classify unprocessed threads and dispatch agents.

        Args:
            dry_run: Overrides the configured dry-run flag when given.

        Returns:
            The dispatcher's run report.
        """
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        logger.info(f"Starting triage run (dry_run={dry_run})")

        if not dry_run:
            self.labels.ensure_labels_exist(list(KNOWN_LABELS))

        global_knowledge = self._load_knowledge(self.user_config.knowledge_for("global"))
        results = self.classify(global_knowledge)

        dispatcher = self._dispatcher(global_knowledge, dry_run)
        return dispatcher.run(results)

    def classify(self, global_knowledge: KnowledgeBundle) -> list[ClassificationResult]:
        """Collect unprocessed threads and classify them."""
        items = collect_unprocessed(
            self.mailbox,
            max_threads=self.settings.triage_max_threads,
            excerpt_chars=self.settings.triage_excerpt_chars,
        )
        if not items:
            logger.info("No unprocessed threads")
            return []

        specific = self._load_knowledge(self.user_config.knowledge_for("classification"))
        batcher = ClassificationBatcher(
            self.llm.generate,
            self.settings.openai_model,
            policy=default_policy(self.settings.llm_max_retries),
        )
        return batcher.classify(
            items,
            global_knowledge,
            self.settings.triage_batch_size,
            specific=specific,
        )

    def run_agent(self, name: str, dry_run: bool | None = None) -> RunReport:
        """
        Run one agent's post-label scan outside of a triage run.

        Raises:
            KeyError: No agent with that name is registered.
        """
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        if name not in self.registry:
            raise KeyError(name)

        logger.info(f"Running agent '{name}' (dry_run={dry_run})")
        global_knowledge = self._load_knowledge(self.user_config.knowledge_for("global"))
        return self._dispatcher(global_knowledge, dry_run).run_agent(name)

    def _dispatcher(self, global_knowledge: KnowledgeBundle, dry_run: bool) -> Dispatcher:
        services = AgentServices(
            mailbox=self.mailbox,
            labels=self.labels,
            llm=self.llm,
            notifier=self.notifier,
            knowledge_store=self.knowledge_store,
            global_knowledge=global_knowledge,
            capacity_tokens=self.settings.model_context_tokens,
            max_knowledge_docs=self.settings.knowledge_max_docs,
        )
        agent_configs = resolve_agent_configs(self.user_config, self.registry.agent_names)
        return Dispatcher(self.registry, services, agent_configs, dry_run)

    def _load_knowledge(self, ref: KnowledgeRef) -> KnowledgeBundle:
        try:
            return load_bundle(
                self.knowledge_store,
                ref,
                max_docs=self.settings.knowledge_max_docs,
                capacity_tokens=self.settings.model_context_tokens,
                warn_percent=self.settings.knowledge_warn_percent,
            )
        except Exception as e:
            # Run continues without this bundle
            logger.error(f"Failed to load knowledge ({ref}): {e}")
            return KnowledgeBundle.empty()


def build_triage_run(run_settings: Settings = settings) -> TriageRun:
    """Create a TriageRun backed by Gmail, Drive and OpenAI."""
    from inbox_triage.knowledge.drive import DriveKnowledgeStore

    return TriageRun(
        mailbox=GmailClient(),
        labels=GmailLabelManager(),
        llm=LLMService(),
        notifier=WebhookNotifier(run_settings.notification_webhook_url),
        registry=build_default_registry(disabled=run_settings.disabled_agents),
        user_config=load_user_config(run_settings.config_path),
        knowledge_store=DriveKnowledgeStore(capacity_tokens=run_settings.model_context_tokens),
        run_settings=run_settings,
    )

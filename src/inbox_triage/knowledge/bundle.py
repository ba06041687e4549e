"""
Knowledge bundles and prompt assembly.

A knowledge bundle is optional context text (organization-wide or
feature-specific) merged into classifier/generator prompts. Bundles that
are not configured contribute nothing to a prompt.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Protocol

from inbox_triage.user_config import KnowledgeRef

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

GLOBAL_KNOWLEDGE_HEADER = "=== ORGANIZATION KNOWLEDGE ==="
SPECIFIC_KNOWLEDGE_HEADER = "=== ADDITIONAL CONTEXT FOR THIS TASK ==="


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 characters per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class KnowledgeMetadata:
    """Size and provenance of a knowledge bundle."""

    doc_count: int = 0
    estimated_tokens: int = 0
    utilization_percent: float = 0.0
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class KnowledgeBundle:
    """Contextual text plus metadata. ``configured=False`` means "no knowledge"."""

    configured: bool = False
    text: str = ""
    metadata: KnowledgeMetadata = field(default_factory=KnowledgeMetadata)

    @classmethod
    def empty(cls) -> "KnowledgeBundle":
        return cls()

    @classmethod
    def from_documents(
        cls,
        documents: list[tuple[str, str]],
        capacity_tokens: int,
    ) -> "KnowledgeBundle":
        """
        Build a bundle from (source, text) pairs.

        Documents with blank text are dropped. Multiple documents are each
        introduced by a "--- source ---" line.
        """
        documents = [(source, text.strip()) for source, text in documents if text and text.strip()]
        if not documents:
            return cls.empty()

        if len(documents) == 1:
            text = documents[0][1]
        else:
            text = "\n\n".join(f"--- {source} ---\n{body}" for source, body in documents)

        return cls(
            configured=True,
            text=text,
            metadata=_metadata_for(text, [source for source, _ in documents], capacity_tokens),
        )

    def merge(self, other: "KnowledgeBundle", capacity_tokens: int) -> "KnowledgeBundle":
        """Concatenate two bundles, recomputing metadata."""
        if not other.configured:
            return self
        if not self.configured:
            return other

        text = f"{self.text}\n\n{other.text}"
        sources = list(self.metadata.sources) + list(other.metadata.sources)
        metadata = _metadata_for(text, sources, capacity_tokens)
        return KnowledgeBundle(configured=True, text=text, metadata=metadata)


def _metadata_for(text: str, sources: list[str], capacity_tokens: int) -> KnowledgeMetadata:
    tokens = estimate_tokens(text)
    utilization = round(tokens / capacity_tokens * 100, 1) if capacity_tokens > 0 else 0.0
    return KnowledgeMetadata(
        doc_count=len(sources),
        estimated_tokens=tokens,
        utilization_percent=utilization,
        sources=tuple(sources),
    )


def assemble(
    base: str,
    global_knowledge: KnowledgeBundle | None,
    specific_knowledge: KnowledgeBundle | None,
    task_data: str,
) -> str:
    """
    Build a prompt in fixed order: base instructions, global knowledge,
    feature-specific knowledge, task data.

    Task data is always last so everything above it reads as instructions.
    Unconfigured bundles add no section at all.
    """
    sections = []
    if base:
        sections.append(base.rstrip())
    if global_knowledge is not None and global_knowledge.configured and global_knowledge.text:
        sections.append(f"{GLOBAL_KNOWLEDGE_HEADER}\n{global_knowledge.text}")
    if specific_knowledge is not None and specific_knowledge.configured and specific_knowledge.text:
        sections.append(f"{SPECIFIC_KNOWLEDGE_HEADER}\n{specific_knowledge.text}")
    if task_data:
        sections.append(task_data)
    return "\n\n".join(sections)


class KnowledgeStore(Protocol):
    """Source of knowledge documents."""

    def fetch_document(self, ref: str) -> KnowledgeBundle: ...

    def fetch_folder(self, ref: str, max_docs: int) -> KnowledgeBundle: ...


def load_bundle(
    store: KnowledgeStore | None,
    ref: KnowledgeRef,
    max_docs: int,
    capacity_tokens: int,
    warn_percent: float = 80.0,
) -> KnowledgeBundle:
    """
    Fetch the knowledge a reference points to.

    Returns an empty bundle when nothing is configured. Large bundles are
    not truncated; a warning is logged once utilization reaches
    ``warn_percent`` of the model's context.
    """
    if store is None or not ref.configured:
        return KnowledgeBundle.empty()

    bundle = KnowledgeBundle.empty()
    if ref.document:
        bundle = bundle.merge(store.fetch_document(ref.document), capacity_tokens)
    if ref.folder:
        bundle = bundle.merge(store.fetch_folder(ref.folder, max_docs), capacity_tokens)

    if bundle.configured:
        meta = bundle.metadata
        logger.info(
            f"Loaded knowledge: {meta.doc_count} doc(s), ~{meta.estimated_tokens} tokens "
            f"({meta.utilization_percent}% of context)"
        )
        if meta.utilization_percent >= warn_percent:
            logger.warning(
                f"Knowledge bundle uses {meta.utilization_percent}% of the model context "
                f"(sources: {', '.join(meta.sources)}); consider trimming the documents"
            )
    return bundle

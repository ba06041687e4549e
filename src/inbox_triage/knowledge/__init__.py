"""Knowledge documents merged into classifier and generator prompts."""

from inbox_triage.knowledge.bundle import (
    KnowledgeBundle,
    KnowledgeMetadata,
    KnowledgeStore,
    assemble,
    estimate_tokens,
    load_bundle,
)

__all__ = [
    "KnowledgeBundle",
    "KnowledgeMetadata",
    "KnowledgeStore",
    "assemble",
    "estimate_tokens",
    "load_bundle",
]

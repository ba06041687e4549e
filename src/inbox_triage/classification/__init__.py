"""Thread classification: item snapshots, batching and label validation."""

from inbox_triage.classification.batcher import (
    ClassificationBatcher,
    normalize_label,
    parse_response,
    partition,
)
from inbox_triage.classification.collector import collect_unprocessed, unprocessed_query
from inbox_triage.classification.models import (
    KNOWN_LABELS,
    REASON_FALLBACK_ON_ERROR,
    REASON_INVALID_OR_MISSING,
    REASON_OK,
    ClassifiableItem,
    ClassificationResult,
    TriageLabel,
)

__all__ = [
    "ClassificationBatcher",
    "normalize_label",
    "parse_response",
    "partition",
    "collect_unprocessed",
    "unprocessed_query",
    "KNOWN_LABELS",
    "REASON_FALLBACK_ON_ERROR",
    "REASON_INVALID_OR_MISSING",
    "REASON_OK",
    "ClassifiableItem",
    "ClassificationResult",
    "TriageLabel",
]

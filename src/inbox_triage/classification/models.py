"""Classification inputs, outputs and the fixed label set."""

from dataclasses import dataclass
from enum import Enum


class TriageLabel(Enum):
    """Classification outcomes. Values are the Gmail label names."""

    REPLY_NEEDED = "reply_needed"
    REVIEW = "review"
    TODO = "todo"
    FYI = "fyi"


KNOWN_LABELS: tuple[str, ...] = tuple(label.value for label in TriageLabel)

LABEL_DESCRIPTIONS = {
    "reply_needed": "a person is waiting for a written answer from the mailbox owner",
    "review": "needs the owner's attention or a decision, but not necessarily a reply",
    "todo": "asks the owner to do a concrete task (outside of replying)",
    "fyi": "informational only: newsletters, notifications, receipts, updates",
}

REASON_OK = "ok"
REASON_FALLBACK_ON_ERROR = "fallback-on-error"
REASON_INVALID_OR_MISSING = "invalid-or-missing"

SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class ClassifiableItem:
    """Snapshot of a thread taken once per run."""

    id: str
    thread_id: str
    subject: str
    sender: str
    age_days: int
    body_excerpt: str

    def to_prompt_dict(self) -> dict:
        return {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "age_days": self.age_days,
            "excerpt": self.body_excerpt,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome for one item. ``label`` is None when no label could be chosen."""

    id: str
    thread_id: str
    label: str | None
    reason: str
    source: str = SOURCE_MODEL

    @classmethod
    def fallback(cls, item: ClassifiableItem, reason: str) -> "ClassificationResult":
        return cls(
            id=item.id,
            thread_id=item.thread_id,
            label=None,
            reason=reason,
            source=SOURCE_FALLBACK,
        )

"""
Batched thread classification.

Items are split into sequential fixed-size batches. Every batch shares one
instruction block (labels, rules, knowledge) and carries only its own items,
so the prompt prefix stays identical across the run. A batch whose request
fails, or whose response cannot be parsed, degrades to fallback results
for that batch only; the remaining batches are classified normally.
"""

import json
import logging
from collections.abc import Callable, Iterator

from inbox_triage.classification.models import (
    KNOWN_LABELS,
    REASON_FALLBACK_ON_ERROR,
    REASON_INVALID_OR_MISSING,
    REASON_OK,
    SOURCE_MODEL,
    ClassifiableItem,
    ClassificationResult,
)
from inbox_triage.classification.prompts import build_batch_payload, build_instructions
from inbox_triage.knowledge.bundle import KnowledgeBundle, assemble
from inbox_triage.llm.retry import RetryPolicy, default_policy, with_retry

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, str], str]

# Same-model re-asks after an unparsable/empty response
PARSE_FALLBACK_ATTEMPTS = 1


def partition(items: list[ClassifiableItem], batch_size: int) -> Iterator[list[ClassifiableItem]]:
    """Yield sequential slices of at most ``batch_size`` items, order preserved."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    for start in range(0, len(items), batch_size):
        yield items[start:start + batch_size]


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        return text[start:end if end != -1 else None].strip()
    if "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        return text[start:end if end != -1 else None].strip()
    return text


def parse_response(text: str) -> dict[str, tuple[object, str]] | None:
    """
    Parse a classifier response into ``{item_id: (proposed_label, reason)}``.

    Accepted shapes:
        {"<id>": {"label": "...", "reason": "..."}}
        {"<id>": "<label>"}
        [{"id": "...", "label": "...", "reason": "..."}]
        {"results": [...same as above...]}

    Returns:
        The mapping, or None when the text is empty, not JSON, or contains
        no usable entries.
    """
    if not text or not text.strip():
        return None

    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError:
        return None

    if isinstance(data, dict) and isinstance(data.get("results"), list):
        data = data["results"]

    parsed: dict[str, tuple[object, str]] = {}

    if isinstance(data, dict):
        for item_id, value in data.items():
            if isinstance(value, dict):
                parsed[str(item_id)] = (value.get("label"), str(value.get("reason") or ""))
            elif isinstance(value, str):
                parsed[str(item_id)] = (value, "")
    elif isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict) and entry.get("id") is not None:
                parsed[str(entry["id"])] = (entry.get("label"), str(entry.get("reason") or ""))

    return parsed or None


def normalize_label(proposed: object, labels: tuple[str, ...]) -> str | None:
    """Canonical label for a proposal (trimmed, case-insensitive), or None."""
    if not isinstance(proposed, str):
        return None
    candidate = proposed.strip().lower()
    return candidate if candidate in labels else None


class ClassificationBatcher:
    """Classifies items in batches through the retry controller."""

    def __init__(
        self,
        generate: GenerateFn,
        model_id: str,
        labels: tuple[str, ...] = KNOWN_LABELS,
        policy: RetryPolicy | None = None,
    ) -> None:
        """
        Args:
            generate: ``generate(prompt, model_id) -> text`` classifier call.
            model_id: Model to classify with.
            labels: Canonical (lowercase) label set.
            policy: Retry policy for each batch request.
        """
        self.generate = generate
        self.model_id = model_id
        self.labels = tuple(label.lower() for label in labels)
        self.policy = policy or default_policy()

    def instruction_block(
        self,
        knowledge: KnowledgeBundle | None = None,
        specific: KnowledgeBundle | None = None,
    ) -> str:
        """The prompt prefix shared by every batch of a run."""
        return assemble(build_instructions(self.labels), knowledge, specific, "")

    def classify(
        self,
        items: list[ClassifiableItem],
        knowledge: KnowledgeBundle | None,
        batch_size: int,
        specific: KnowledgeBundle | None = None,
    ) -> list[ClassificationResult]:
        """
        Classify every item. Always returns exactly one result per item.

        Args:
            items: Items to classify.
            knowledge: Organization-wide knowledge (may be unconfigured).
            batch_size: Maximum items per classifier request.
            specific: Classification-specific knowledge (may be unconfigured).
        """
        instructions = build_instructions(self.labels)
        results: list[ClassificationResult] = []

        batches = list(partition(items, batch_size))
        for index, batch in enumerate(batches, 1):
            prompt = assemble(instructions, knowledge, specific, build_batch_payload(batch))
            batch_results = self._classify_batch(batch, prompt, index)
            results.extend(batch_results)

        fallbacks = sum(1 for r in results if r.label is None)
        logger.info(
            f"Classified {len(items)} item(s) in {len(batches)} batch(es); "
            f"{fallbacks} without a label"
        )
        return results

    def _classify_batch(
        self, batch: list[ClassifiableItem], prompt: str, index: int
    ) -> list[ClassificationResult]:
        try:
            parsed = self._request(prompt, index)
        except Exception as e:
            logger.error(f"Batch {index} ({len(batch)} item(s)) failed: {e}")
            parsed = None

        if parsed is None:
            return [ClassificationResult.fallback(item, REASON_FALLBACK_ON_ERROR) for item in batch]

        results = []
        for item in batch:
            proposed, reason = parsed.get(item.id, (None, ""))
            label = normalize_label(proposed, self.labels)

            if label is None:
                logger.debug(f"Item {item.id}: invalid or missing label {proposed!r}")
                results.append(ClassificationResult.fallback(item, REASON_INVALID_OR_MISSING))
            else:
                results.append(
                    ClassificationResult(
                        id=item.id,
                        thread_id=item.thread_id,
                        label=label,
                        reason=reason.strip() or REASON_OK,
                        source=SOURCE_MODEL,
                    )
                )
        return results

    def _request(self, prompt: str, index: int) -> dict[str, tuple[object, str]] | None:
        """Call the classifier; re-ask once with the same model if the reply is unusable."""
        for attempt in range(1 + PARSE_FALLBACK_ATTEMPTS):
            text = with_retry(
                lambda: self.generate(prompt, self.model_id),
                self.policy,
                f"classify batch {index}",
            )
            parsed = parse_response(text)
            if parsed is not None:
                return parsed
            logger.warning(
                f"Batch {index}: unparsable classifier response "
                f"(attempt {attempt + 1}): {(text or '')[:200]!r}"
            )
        return None

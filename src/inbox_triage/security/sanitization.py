"""
Sanitization of mailbox text before it reaches prompts or logs.

Email bodies are untrusted input: they are bounded in length, stripped of
instruction-override phrasing, and redacted before being logged.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Phrases used to hijack a classifier/generator prompt
PROMPT_INJECTION_PATTERNS = [
    r"ignore\s+(all\s+)?(previous\s+|prior\s+|above\s+)?instructions?",
    r"disregard\s+(the\s+)?(above|previous|prior)",
    r"forget\s+(all\s+)?(previous\s+|prior\s+)?instructions?",
    r"(new|updated)\s+instructions?:",
    r"system\s+prompt:",
    r"you\s+are\s+now\s+a",
    r"pretend\s+(you\s+are|to\s+be)",
    r"(classify|label)\s+this\s+(email\s+)?as",
    r"respond\s+with\s+only",
    r"reply\s+with\s+exactly",
    r"show\s+(me\s+)?(your\s+)?system\s+prompt",
    r"jailbreak",
]

COMPILED_INJECTION_PATTERNS = [
    re.compile(pattern, re.IGNORECASE) for pattern in PROMPT_INJECTION_PATTERNS
]


def sanitize_for_prompt(text: str, max_length: int | None = None) -> str:
    """
    Sanitize text for safe inclusion in LLM prompts.

    Args:
        text: The text to sanitize.
        max_length: Optional maximum length to truncate to.

    Returns:
        Text with injection phrasing replaced by "[FILTERED]", whitespace
        runs collapsed, and truncated with a "[TRUNCATED]" marker.
    """
    if not text:
        return ""

    sanitized = text
    injection_detected = False

    for pattern in COMPILED_INJECTION_PATTERNS:
        if pattern.search(sanitized):
            injection_detected = True
            sanitized = pattern.sub("[FILTERED]", sanitized)

    if injection_detected:
        logger.warning(
            f"Potential prompt injection filtered (original length: {len(text)})"
        )

    sanitized = re.sub(r"\r\n?", "\n", sanitized)
    sanitized = re.sub(r"\n{3,}", "\n\n", sanitized)
    sanitized = re.sub(r"[ \t]{3,}", "  ", sanitized).strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [TRUNCATED]"

    return sanitized


def redact_sensitive_for_logging(text: str) -> str:
    """
    Redact potentially sensitive information for safe logging.

    Masks email addresses (keeping the domain), phone numbers, card
    numbers and API keys.
    """
    if not text:
        return ""

    redacted = re.sub(
        r"[a-zA-Z0-9._%+-]+@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
        r"[EMAIL]@\1",
        text,
    )
    redacted = re.sub(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b", "[CARD]", redacted)
    redacted = re.sub(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b", "[PHONE]", redacted)
    redacted = re.sub(
        r"\b(sk-|api[_-]?key[=:]\s*)[a-zA-Z0-9]{20,}\b",
        r"\1[REDACTED]",
        redacted,
        flags=re.IGNORECASE,
    )
    return redacted

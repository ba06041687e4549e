"""
Retry with backoff for calls to external AI services.

Only quota/rate-limit failures are retried. The delay is the one the
provider suggests in its error message ("retry in 2.5s") when present,
otherwise exponential (2^attempt seconds). A 10% buffer is added to
either so the next attempt lands after the provider's window closes.

Size/token-limit errors are never retried, even when their message also
mentions a rate limit.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from inbox_triage.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DELAY_BUFFER = 1.1

RETRY_DELAY_PATTERN = re.compile(
    r"(?:retry|try again)\s+(?:in|after)\s+(\d+(?:\.\d+)?)\s*s",
    re.IGNORECASE,
)

SIZE_LIMIT_PATTERNS = [
    r"context[\s_]length",
    r"maximum context",
    r"token limit",
    r"too many tokens",
    r"request too large",
    r"payload too large",
    r"exceeds? the (?:maximum|max) (?:number of )?tokens",
]

QUOTA_PATTERNS = [
    r"quota",
    r"rate[\s_-]?limit",
    r"\b429\b",
    r"resource[\s_]exhausted",
    r"too many requests",
]

COMPILED_SIZE_LIMIT_PATTERNS = [re.compile(p, re.IGNORECASE) for p in SIZE_LIMIT_PATTERNS]
COMPILED_QUOTA_PATTERNS = [re.compile(p, re.IGNORECASE) for p in QUOTA_PATTERNS]


def is_size_limit_error(error: BaseException) -> bool:
    """Check whether an error says the request itself is too big."""
    message = str(error)
    return any(p.search(message) for p in COMPILED_SIZE_LIMIT_PATTERNS)


def is_quota_error(error: BaseException) -> bool:
    """
    Check whether an error is a quota/rate-limit failure worth retrying.

    Size-limit phrasing wins over quota phrasing.
    """
    if is_size_limit_error(error):
        return False
    message = str(error)
    return any(p.search(message) for p in COMPILED_QUOTA_PATTERNS)


def parse_retry_delay(message: str) -> float | None:
    """
    Extract a provider-suggested delay in seconds from an error message.

    Examples:
        "Rate limit reached. Please try again in 2.5s." -> 2.5
        "quota exceeded, retry after 10s" -> 10.0
        "quota exceeded" -> None
    """
    match = RETRY_DELAY_PATTERN.search(message or "")
    if match is None:
        return None
    return float(match.group(1))


def compute_delay(error: BaseException, attempt: int) -> float:
    """
    Seconds to wait after a failed attempt.

    Args:
        error: The exception raised by the attempt.
        attempt: 1-based number of the attempt that failed.
    """
    hinted = parse_retry_delay(str(error))
    base = hinted if hinted is not None else float(2**attempt)
    return round(base * DELAY_BUFFER, 6)


@dataclass
class RetryPolicy:
    """When and how long to retry a failing call."""

    max_retries: int = 3
    is_retryable: Callable[[BaseException], bool] = is_quota_error
    delay_for: Callable[[BaseException, int], float] = compute_delay
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)


def default_policy(max_retries: int | None = None) -> RetryPolicy:
    """Quota-aware policy using the configured retry count."""
    if max_retries is None:
        max_retries = settings.llm_max_retries
    return RetryPolicy(max_retries=max_retries)


def with_retry(call: Callable[[], T], policy: RetryPolicy, operation_name: str) -> T:
    """
    Run ``call`` and retry it according to ``policy``.

    Non-retryable errors propagate immediately. Once ``policy.max_retries``
    retries are used up, the last error is re-raised.

    Args:
        call: Zero-argument callable performing the external request.
        policy: Retry policy.
        operation_name: Name used in log lines.

    Returns:
        Whatever ``call`` returns.
    """

    def _wait(retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        return policy.delay_for(error, retry_state.attempt_number)

    def _log_before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            f"{operation_name}: attempt {retry_state.attempt_number}/"
            f"{policy.max_retries + 1} failed ({error}); "
            f"retrying in {retry_state.next_action.sleep:.2f}s"
        )

    retryer = Retrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=_wait,
        retry=retry_if_exception(policy.is_retryable),
        before_sleep=_log_before_sleep,
        sleep=policy.sleep,
        reraise=True,
    )
    return retryer(call)

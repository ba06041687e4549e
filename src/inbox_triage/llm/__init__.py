"""LLM access: generation service and quota-aware retry."""

from inbox_triage.llm.retry import (
    RetryPolicy,
    compute_delay,
    default_policy,
    is_quota_error,
    is_size_limit_error,
    parse_retry_delay,
    with_retry,
)
from inbox_triage.llm.service import LLMService

__all__ = [
    "LLMService",
    "RetryPolicy",
    "compute_delay",
    "default_policy",
    "is_quota_error",
    "is_size_limit_error",
    "parse_retry_delay",
    "with_retry",
]

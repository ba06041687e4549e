"""
Security utilities for inbox triage.

Provides:
- Scheduled trigger authentication
- LLM prompt sanitization
- Log redaction
"""

from inbox_triage.security.sanitization import (
    redact_sensitive_for_logging,
    sanitize_for_prompt,
)
from inbox_triage.security.scheduler_auth import (
    SchedulerAuthError,
    is_scheduler_auth_enabled,
    verify_scheduler_token,
)

__all__ = [
    "redact_sensitive_for_logging",
    "sanitize_for_prompt",
    "SchedulerAuthError",
    "is_scheduler_auth_enabled",
    "verify_scheduler_token",
]

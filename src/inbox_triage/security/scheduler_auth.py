"""
Authentication of scheduled run triggers.

Cloud Scheduler calls the run endpoint with an OIDC bearer token signed by
Google. The token's signature, expiry and audience are verified, and the
caller's service account is checked when one is configured.
"""

import logging
import os

from cachetools import TTLCache
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from inbox_triage.config import settings

logger = logging.getLogger(__name__)

# Verified tokens (5 minute TTL)
_verified_tokens: TTLCache = TTLCache(maxsize=256, ttl=300)


class SchedulerAuthError(Exception):
    """Raised when a run trigger cannot be authenticated."""


def is_scheduler_auth_enabled() -> bool:
    """Verification runs on Cloud Run, or anywhere SCHEDULER_AUTH_ENABLED=true."""
    force_enabled = os.getenv("SCHEDULER_AUTH_ENABLED", "").lower() == "true"
    return os.getenv("K_SERVICE") is not None or force_enabled


def expected_audience() -> str:
    """Audience the token must be minted for (the service URL)."""
    if settings.scheduler_audience:
        return settings.scheduler_audience

    service_name = os.getenv("K_SERVICE")
    project_id = settings.project_id
    if service_name and project_id:
        return f"https://{service_name}-{project_id}.{settings.gcp_region}.run.app"

    return os.getenv("SERVICE_URL", "http://localhost:8000")


def verify_scheduler_token(authorization_header: str | None) -> dict:
    """
    Verify the bearer token of a scheduled trigger.

    Args:
        authorization_header: The Authorization header value ("Bearer <token>").

    Returns:
        The decoded token claims.

    Raises:
        SchedulerAuthError: If the header is missing or the token is invalid.
    """
    if not authorization_header or not authorization_header.startswith("Bearer "):
        raise SchedulerAuthError("Missing or malformed Authorization header")

    token = authorization_header[len("Bearer "):].strip()
    if not token:
        raise SchedulerAuthError("Empty bearer token")

    if token in _verified_tokens:
        return _verified_tokens[token]

    try:
        claims = id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            audience=expected_audience(),
        )
    except ValueError as e:
        logger.warning(f"Scheduler token verification failed: {e}")
        raise SchedulerAuthError(f"Invalid token: {e}") from e

    expected_email = settings.scheduler_service_account
    if expected_email and claims.get("email") != expected_email:
        raise SchedulerAuthError(
            f"Token email mismatch: expected {expected_email}, got {claims.get('email')}"
        )

    _verified_tokens[token] = claims
    return claims

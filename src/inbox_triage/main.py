"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from inbox_triage.api.routes import router
from inbox_triage.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# =============================================================================
# RATE LIMITING CONFIGURATION
# =============================================================================

# Custom key function that uses X-Forwarded-For in Cloud Run
def get_client_ip(request: Request) -> str:
    """Get client IP, handling Cloud Run's X-Forwarded-For header."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        return forwarded_for.split(",")[0].strip()
    return get_remote_address(request)


# Storage defaults to in-memory, which resets on restart
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/minute"],
)


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Scheduled mailbox triage: classify, label and hand off to agents",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router)


# =============================================================================
# EVENT HANDLERS
# =============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    """Log startup information."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Using OpenAI model: {settings.openai_model}")
    logger.info(
        f"Triage: batch_size={settings.triage_batch_size}, "
        f"max_threads={settings.triage_max_threads}, dry_run={settings.dry_run}"
    )
    if settings.disabled_agents:
        logger.info(f"Disabled agents: {', '.join(settings.disabled_agents)}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

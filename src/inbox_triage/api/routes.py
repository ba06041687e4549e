"""
API routes for the triage service.

Endpoints:
- GET /health: Liveness check
- GET /agents: Registered agents (disabled ones included)
- POST /triage/run: Run one triage pass (called by Cloud Scheduler)
- POST /agents/{name}/run: Run one agent's mailbox scan on demand

Security:
- Run endpoints verify the Cloud Scheduler OIDC token (on Cloud Run)
- Rate limiting via slowapi (configured in main.py)
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from inbox_triage.api.schemas import (
    AgentInfo,
    AgentListResponse,
    HealthResponse,
    RunReportResponse,
    TriageRunRequest,
)
from inbox_triage.config import settings
from inbox_triage.pipeline import TriageRun, build_triage_run
from inbox_triage.security.scheduler_auth import (
    SchedulerAuthError,
    is_scheduler_auth_enabled,
    verify_scheduler_token,
)

logger = logging.getLogger(__name__)

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


@lru_cache(maxsize=1)
def get_triage_run() -> TriageRun:
    """Process-wide TriageRun (built on first use)."""
    return build_triage_run()


def require_scheduler_auth(
    authorization: str | None = Header(None, alias="Authorization"),
) -> None:
    """Reject run triggers without a valid scheduler token."""
    if not is_scheduler_auth_enabled():
        return
    try:
        verify_scheduler_token(authorization)
    except SchedulerAuthError as e:
        logger.warning(f"Scheduler authentication failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/agents", response_model=AgentListResponse)
@limiter.limit("60/minute")
def list_agents(
    request: Request,
    triage: TriageRun = Depends(get_triage_run),
) -> AgentListResponse:
    """List agent registrations."""
    return AgentListResponse(
        agents=[AgentInfo(**r.describe()) for r in triage.registry.all_agents()]
    )


@router.post(
    "/triage/run",
    response_model=RunReportResponse,
    dependencies=[Depends(require_scheduler_auth)],
)
@limiter.limit("10/minute")
def run_triage(
    request: Request,
    run_request: TriageRunRequest | None = None,
    triage: TriageRun = Depends(get_triage_run),
) -> RunReportResponse:
    """
    Run one triage pass: classify unprocessed threads, label them and
    dispatch agents.

    Rate limited to 10 requests/minute to prevent API cost abuse.
    """
    dry_run = run_request.dry_run if run_request else None

    try:
        report = triage.execute(dry_run=dry_run)
    except Exception:
        logger.exception("Triage run failed")
        raise HTTPException(status_code=500, detail="Triage run failed. See logs.")

    return RunReportResponse(**report.as_dict())


@router.post(
    "/agents/{name}/run",
    response_model=RunReportResponse,
    dependencies=[Depends(require_scheduler_auth)],
)
@limiter.limit("10/minute")
def run_agent(
    request: Request,
    name: str,
    run_request: TriageRunRequest | None = None,
    triage: TriageRun = Depends(get_triage_run),
) -> RunReportResponse:
    """Run one agent's post-label scan outside of a triage run."""
    dry_run = run_request.dry_run if run_request else None

    try:
        report = triage.run_agent(name, dry_run=dry_run)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {name}")
    except Exception:
        logger.exception(f"Agent run failed: {name}")
        raise HTTPException(status_code=500, detail="Agent run failed. See logs.")

    return RunReportResponse(**report.as_dict())

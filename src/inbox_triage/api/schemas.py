"""Pydantic schemas for API request/response models."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")


class TriageRunRequest(BaseModel):
    """Request body for a triage run (optional; defaults apply when omitted)."""

    dry_run: bool | None = Field(
        default=None,
        description="Override the configured dry-run flag for this run",
    )


class TallyResponse(BaseModel):
    """Hook outcome counts for one dispatcher phase."""

    processed: int = 0
    skipped: int = 0
    retries: int = 0
    errors: int = 0


class RunReportResponse(BaseModel):
    """Aggregate counts of a triage run or agent scan."""

    dry_run: bool
    classified: int = 0
    labeled: int = 0
    unlabeled: int = 0
    label_errors: int = 0
    on_label: TallyResponse = Field(default_factory=TallyResponse)
    post_label: TallyResponse = Field(default_factory=TallyResponse)
    scans: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description="Per-agent scan tallies keyed by 'agent:label'",
    )


class AgentInfo(BaseModel):
    """One agent registration."""

    label: str
    name: str
    on_label: bool
    post_label: bool
    run_when: str
    timeout_ms_hint: int
    enabled: bool


class AgentListResponse(BaseModel):
    """Registered agents, in registration order."""

    agents: list[AgentInfo]

"""API module."""

from inbox_triage.api.routes import router

__all__ = ["router"]

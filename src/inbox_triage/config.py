"""Application configuration using Pydantic settings."""

import json
import os
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # OpenAI
    openai_api_key: str = ""

    # Application
    app_name: str = "Inbox Triage"
    app_version: str = "0.1.0"
    debug: bool = False

    # LLM Settings (default to mini for cost efficiency, override with OPENAI_MODEL env var)
    openai_model: str = "gpt-4o-mini"
    max_tokens: int = 1500
    temperature: float = 0.2
    llm_max_retries: int = 3
    model_context_tokens: int = 128000

    # Triage run
    triage_batch_size: int = 10
    triage_max_threads: int = 50
    triage_excerpt_chars: int = 500
    dry_run: bool = False
    # Comma-separated (DISABLED_AGENTS=fyi_digest,todo_forwarder) or a JSON list
    disabled_agents: Annotated[list[str], NoDecode] = []

    # Knowledge documents
    knowledge_max_docs: int = 10
    knowledge_warn_percent: float = 80.0

    # Notifications
    notification_webhook_url: str | None = None

    # User config file (agents, knowledge references, signature)
    config_path: str = "config.yaml"

    # GCP Settings
    gcp_project_id: str | None = None  # Auto-detected in Cloud Run via env var
    gcp_region: str = "europe-west1"
    scheduler_audience: str | None = None
    scheduler_service_account: str | None = None

    @field_validator("disabled_agents", mode="before")
    @classmethod
    def split_disabled_agents(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [name.strip() for name in value.split(",") if name.strip()]
        return value

    @property
    def project_id(self) -> str | None:
        """Get GCP project ID from settings or environment."""
        return (
            self.gcp_project_id
            or os.getenv("GOOGLE_CLOUD_PROJECT")
            or os.getenv("GCP_PROJECT")
        )


settings = Settings()

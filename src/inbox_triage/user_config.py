"""
User configuration from config.yaml.

This module loads the mailbox owner's signature, knowledge document
references and per-agent settings from the config.yaml file. These are
separate from environment-based settings in config.py.

config.yaml is for:
- User email and signature
- Knowledge document/folder references (global and per feature)
- Per-agent sections (forward address, dry-run override, limits)

.env is for:
- API keys (secrets)
- GCP settings
- Run-wide flags (dry run, batch size)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from inbox_triage.errors import ConfigurationError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class KnowledgeRef:
    """Where to find a knowledge source. Both fields are optional."""

    document: str | None = None
    folder: str | None = None

    @property
    def configured(self) -> bool:
        return bool(self.document or self.folder)

    @classmethod
    def from_raw(cls, raw: Any) -> "KnowledgeRef":
        if not isinstance(raw, dict):
            return cls()
        return cls(document=raw.get("document") or None, folder=raw.get("folder") or None)


@dataclass
class UserConfig:
    """Complete user configuration from config.yaml."""

    email: str = ""
    signature: str = ""
    knowledge: dict[str, KnowledgeRef] = field(default_factory=dict)
    agents: dict[str, dict[str, Any]] = field(default_factory=dict)

    def knowledge_for(self, feature: str) -> KnowledgeRef:
        """Knowledge reference for a feature ("global", "classification", ...)."""
        return self.knowledge.get(feature, KnowledgeRef())


class AgentConfig:
    """
    Read-only configuration handed to an agent's hooks.

    Resolved once per run from the agent's config.yaml section, with
    ``user.*`` values available as fallbacks.
    """

    def __init__(
        self,
        agent_name: str,
        values: dict[str, Any] | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self.agent_name = agent_name
        self._values = dict(values or {})
        self._defaults = dict(defaults or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values and self._values[key] is not None:
            return self._values[key]
        return self._defaults.get(key, default)

    def require(self, key: str) -> Any:
        """Get a setting or raise ConfigurationError if it is absent/empty."""
        value = self.get(key, _MISSING)
        if value is _MISSING or value in (None, ""):
            raise ConfigurationError(
                f"Agent '{self.agent_name}' requires setting '{key}' "
                f"(agents.{self.agent_name}.{key} in config.yaml)"
            )
        return value

    @property
    def dry_run_override(self) -> bool:
        return bool(self._values.get("dry_run", False))

    @property
    def knowledge(self) -> KnowledgeRef:
        return KnowledgeRef.from_raw(self._values.get("knowledge"))

    def __repr__(self) -> str:
        return f"AgentConfig({self.agent_name!r}, keys={sorted(self._values)})"


def load_user_config(config_path: Path | str) -> UserConfig:
    """
    Load user configuration from config.yaml.

    Args:
        config_path: Path to config.yaml.

    Returns:
        UserConfig with loaded or default values.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return UserConfig()

    try:
        raw_config = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse {config_path}: {e}")
        return UserConfig()

    if not isinstance(raw_config, dict):
        return UserConfig()

    user_section = raw_config.get("user") or {}
    knowledge_section = raw_config.get("knowledge") or {}
    agents_section = raw_config.get("agents") or {}

    return UserConfig(
        email=user_section.get("email", ""),
        signature=(user_section.get("signature") or "").strip(),
        knowledge={
            name: KnowledgeRef.from_raw(ref) for name, ref in knowledge_section.items()
        },
        agents={
            name: dict(section or {}) for name, section in agents_section.items()
        },
    )


def resolve_agent_configs(
    user_config: UserConfig, agent_names: list[str]
) -> dict[str, AgentConfig]:
    """Build one AgentConfig per agent name for the current run."""
    defaults = {"user_email": user_config.email, "signature": user_config.signature}
    return {
        name: AgentConfig(name, user_config.agents.get(name), defaults)
        for name in agent_names
    }


def append_signature(body: str, signature: str | None) -> str:
    """
    Append email signature to body.

    Args:
        body: The email body text.
        signature: Signature text; nothing is appended when empty.

    Returns:
        Body with signature appended (if signature exists).
    """
    if not signature:
        return body

    return f"{body}\n\n--\n{signature}"

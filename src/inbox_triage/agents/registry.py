"""
Registry of triage agents, keyed by label.

A fresh registry is built at process start by calling a list of pure
registration functions with it. The registry does no discovery of its own
and is not modified once a run starts.
"""

import logging
from collections.abc import Callable, Iterable

from inbox_triage.agents.base import (
    AgentHooks,
    AgentOptions,
    AgentRegistration,
)
from inbox_triage.classification.models import KNOWN_LABELS
from inbox_triage.errors import RegistrationError

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Map from label to the agents registered for it, in registration order."""

    def __init__(
        self,
        disabled: Iterable[str] = (),
        known_labels: tuple[str, ...] = KNOWN_LABELS,
    ) -> None:
        """
        Args:
            disabled: Agent names to register with ``enabled=False``.
            known_labels: Labels agents may register for.
        """
        self._by_label: dict[str, list[AgentRegistration]] = {}
        self._order: list[AgentRegistration] = []
        self._disabled = set(disabled)
        self._known_labels = known_labels

    def register(
        self,
        label: str,
        name: str,
        hooks: AgentHooks,
        options: AgentOptions | None = None,
    ) -> AgentRegistration:
        """
        Register an agent for a label.

        Raises:
            RegistrationError: No hook given, unknown label, or the
                (label, name) pair is already registered.
        """
        if hooks.on_label is None and hooks.post_label is None:
            raise RegistrationError(f"Agent '{name}' for '{label}' has neither on_label nor post_label")

        if label not in self._known_labels:
            raise RegistrationError(
                f"Agent '{name}' registered for unknown label '{label}' "
                f"(known: {', '.join(self._known_labels)})"
            )

        if any(r.name == name for r in self._by_label.get(label, [])):
            raise RegistrationError(f"Agent '{name}' is already registered for '{label}'")

        options = options or AgentOptions()
        if name in self._disabled and options.enabled:
            options = AgentOptions(
                run_when=options.run_when,
                timeout_ms_hint=options.timeout_ms_hint,
                enabled=False,
            )

        registration = AgentRegistration(
            label=label,
            name=name,
            hooks=hooks,
            options=options,
        )
        self._by_label.setdefault(label, []).append(registration)
        self._order.append(registration)

        logger.debug(
            f"Registered agent '{name}' for '{label}' "
            f"(on_label={hooks.on_label is not None}, post_label={hooks.post_label is not None}, "
            f"enabled={options.enabled})"
        )
        return registration

    def get_agents(self, label: str) -> list[AgentRegistration]:
        """Registrations for a label in registration order (disabled included)."""
        return list(self._by_label.get(label, []))

    def all_agents(self) -> list[AgentRegistration]:
        return list(self._order)

    def find(self, name: str) -> list[AgentRegistration]:
        """All registrations of an agent name, across labels."""
        return [r for r in self._order if r.name == name]

    @property
    def labels(self) -> list[str]:
        return list(self._by_label)

    @property
    def agent_names(self) -> list[str]:
        return list(dict.fromkeys(r.name for r in self._order))

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, name: str) -> bool:
        return any(r.name == name for r in self._order)


RegistrationFn = Callable[[AgentRegistry], None]


def build_registry(
    registrations: Iterable[RegistrationFn],
    disabled: Iterable[str] = (),
) -> AgentRegistry:
    """Create a registry and populate it with each registration function."""
    registry = AgentRegistry(disabled=disabled)
    for register in registrations:
        register(registry)
    logger.info(f"Agent registry ready: {len(registry)} registration(s)")
    return registry

"""
Triage agents module.

Agents act on classified threads through two hooks:
- on_label: called per item right after its label is committed
- post_label: called once per run to scan the mailbox for its own work

Built-in agents:
- reply_drafter: drafts replies for reply_needed threads
- todo_forwarder: forwards todo threads to a task inbox
- review_notifier: posts a notification for review threads
- fyi_digest: summarizes and archives fyi threads
"""

from collections.abc import Iterable

from inbox_triage.agents.base import (
    AgentHooks,
    AgentOptions,
    AgentRegistration,
    AgentServices,
    ExecutionContext,
    HookResult,
    HookStatus,
    RunWhen,
    ScanContext,
    ScanTally,
)
from inbox_triage.agents.dispatcher import Dispatcher, RunReport, Tally
from inbox_triage.agents.registry import AgentRegistry, RegistrationFn, build_registry
from inbox_triage.agents import fyi_digest, reply_drafter, review_notifier, todo_forwarder

DEFAULT_REGISTRATIONS: tuple[RegistrationFn, ...] = (
    reply_drafter.register,
    todo_forwarder.register,
    review_notifier.register,
    fyi_digest.register,
)


def build_default_registry(disabled: Iterable[str] = ()) -> AgentRegistry:
    """Registry with the built-in agents."""
    return build_registry(DEFAULT_REGISTRATIONS, disabled=disabled)


__all__ = [
    "AgentHooks",
    "AgentOptions",
    "AgentRegistration",
    "AgentServices",
    "ExecutionContext",
    "HookResult",
    "HookStatus",
    "RunWhen",
    "ScanContext",
    "ScanTally",
    "Dispatcher",
    "RunReport",
    "Tally",
    "AgentRegistry",
    "RegistrationFn",
    "build_registry",
    "DEFAULT_REGISTRATIONS",
    "build_default_registry",
]

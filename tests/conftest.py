"""Shared test fixtures and configuration."""

import logging
from unittest.mock import MagicMock

import pytest

from inbox_triage.agents.base import AgentServices, ExecutionContext, ScanContext
from inbox_triage.gmail.client import EmailData, MailThread
from inbox_triage.user_config import AgentConfig


def build_email(
    message_id: str = "msg-1",
    thread_id: str = "thread-1",
    subject: str = "Quarterly budget",
    from_email: str = "john@example.com",
    from_name: str = "John Smith",
    body: str = "Can you confirm the numbers by Friday?",
    labels: list[str] | None = None,
    internal_date_ms: int = 0,
) -> EmailData:
    return EmailData(
        message_id=message_id,
        thread_id=thread_id,
        subject=subject,
        from_email=from_email,
        from_name=from_name,
        to_email="me@example.com",
        date="Mon, 13 Jan 2025 10:00:00 +0000",
        body=body,
        snippet=body[:50],
        labels=labels if labels is not None else ["INBOX"],
        internal_date_ms=internal_date_ms,
        rfc_message_id=f"<{message_id}@mail.example.com>",
    )


def build_thread(thread_id: str = "thread-1", *emails: EmailData) -> MailThread:
    if not emails:
        emails = (build_email(thread_id=thread_id),)
    return MailThread(thread_id=thread_id, messages=list(emails))


@pytest.fixture
def make_email():
    """Factory for EmailData objects."""
    return build_email


@pytest.fixture
def make_thread():
    """Factory for MailThread objects."""
    return build_thread


@pytest.fixture
def mailbox():
    """Mock Gmail client; every thread is an active single-message thread."""
    mock = MagicMock()
    mock.search.return_value = []
    mock.get_thread.side_effect = lambda thread_id: build_thread(
        thread_id, build_email(thread_id=thread_id, message_id=f"msg-{thread_id}")
    )
    mock.is_active.return_value = True
    mock.has_draft.return_value = False
    mock.should_skip_sender.return_value = False
    mock.is_auto_reply.return_value = False
    mock.create_draft.return_value = "draft-1"
    mock.forward.return_value = "sent-1"
    return mock


@pytest.fixture
def label_manager():
    """Mock label manager; no thread carries any label."""
    mock = MagicMock()
    mock.has_label.return_value = False
    return mock


@pytest.fixture
def llm():
    mock = MagicMock()
    mock.generate.return_value = "Hi John,\n\nThe numbers are confirmed."
    return mock


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.configured = True
    mock.send.return_value = True
    return mock


@pytest.fixture
def services(mailbox, label_manager, llm, notifier) -> AgentServices:
    """Agent services backed by mocks, without knowledge."""
    return AgentServices(
        mailbox=mailbox,
        labels=label_manager,
        llm=llm,
        notifier=notifier,
    )


@pytest.fixture
def hook_logger() -> logging.LoggerAdapter:
    return logging.LoggerAdapter(logging.getLogger("tests.agents"), {})


@pytest.fixture
def make_exec_context(services, hook_logger):
    """Factory for on_label contexts."""

    def _make(
        label: str,
        thread_id: str = "thread-1",
        config: dict | None = None,
        dry_run: bool = False,
        reason: str = "ok",
        agent_name: str = "test_agent",
    ) -> ExecutionContext:
        return ExecutionContext(
            label=label,
            reason=reason,
            item_id=f"msg-{thread_id}",
            thread_id=thread_id,
            config=AgentConfig(
                agent_name, config, {"user_email": "me@example.com", "signature": "Jane Doe"}
            ),
            dry_run=dry_run,
            logger=hook_logger,
            services=services,
        )

    return _make


@pytest.fixture
def make_scan_context(services, hook_logger):
    """Factory for post_label contexts."""

    def _make(
        label: str,
        config: dict | None = None,
        dry_run: bool = False,
        agent_name: str = "test_agent",
    ) -> ScanContext:
        return ScanContext(
            label=label,
            config=AgentConfig(
                agent_name, config, {"user_email": "me@example.com", "signature": "Jane Doe"}
            ),
            dry_run=dry_run,
            logger=hook_logger,
            services=services,
        )

    return _make

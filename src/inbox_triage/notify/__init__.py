"""Outbound notification delivery."""

from inbox_triage.notify.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]

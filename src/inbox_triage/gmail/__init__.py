"""Gmail integration module for inbox triage."""

from inbox_triage.gmail.auth import get_credentials, get_drive_service, get_gmail_service
from inbox_triage.gmail.client import EmailData, GmailClient, MailThread
from inbox_triage.gmail.labels import GmailLabelManager

__all__ = [
    "get_credentials",
    "get_drive_service",
    "get_gmail_service",
    "EmailData",
    "GmailClient",
    "MailThread",
    "GmailLabelManager",
]

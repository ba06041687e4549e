"""
Google API authentication module.

Loads credentials from Secret Manager in production (Cloud Run)
or from local token file in development.
"""

import json
import os
from functools import lru_cache
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build, Resource

# Scopes required for triage: labels, drafts, forwards, archiving, knowledge docs
SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.labels",
    "https://www.googleapis.com/auth/gmail.compose",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/drive.readonly",
]

TOKEN_SECRET_NAME = "gmail-refresh-token"
DEFAULT_TOKEN_PATH = "scripts/token.json"


def local_token_path() -> Path:
    """Token file used outside Cloud Run (GMAIL_TOKEN_PATH overrides the default)."""
    return Path(os.getenv("GMAIL_TOKEN_PATH", DEFAULT_TOKEN_PATH))


def _load_from_secret_manager(secret_name: str, project_id: str) -> str:
    """Load a secret from Google Cloud Secret Manager."""
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()
    name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


@lru_cache(maxsize=1)
def get_credentials() -> Credentials:
    """
    Get Google API credentials for the triaged mailbox.

    In production (Cloud Run): Loads from Secret Manager
    In development: Loads from local token.json file

    Returns:
        Google OAuth2 Credentials object
    """
    project_id = os.getenv("GOOGLE_CLOUD_PROJECT") or os.getenv("GCP_PROJECT")
    is_cloud_run = os.getenv("K_SERVICE") is not None

    if is_cloud_run and project_id:
        token_json = _load_from_secret_manager(TOKEN_SECRET_NAME, project_id)
    else:
        token_path = local_token_path()
        if not token_path.exists():
            raise FileNotFoundError(
                f"Token file not found at {token_path}. "
                "Run 'python scripts/gmail_auth.py' to authenticate."
            )
        token_json = token_path.read_text()

    creds = Credentials.from_authorized_user_info(json.loads(token_json), SCOPES)

    if creds.expired and creds.refresh_token:
        creds.refresh(Request())

    return creds


@lru_cache(maxsize=1)
def get_gmail_service() -> Resource:
    """Get authenticated Gmail API service."""
    return build("gmail", "v1", credentials=get_credentials())


@lru_cache(maxsize=1)
def get_drive_service() -> Resource:
    """Get authenticated Drive API service (knowledge documents)."""
    return build("drive", "v3", credentials=get_credentials())

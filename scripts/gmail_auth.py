#!/usr/bin/env python3
"""
One-time OAuth2 bootstrap for the triaged mailbox (Gmail + Drive).

Writes the token to the same file the service reads locally
(GMAIL_TOKEN_PATH, default scripts/token.json), then prints the
Secret Manager commands for Cloud Run.

Usage:
    1. Download a Desktop OAuth client from the GCP Console
    2. Save it as scripts/credentials.json
    3. Run: python scripts/gmail_auth.py
"""

from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from inbox_triage.gmail.auth import SCOPES, TOKEN_SECRET_NAME, local_token_path

CREDENTIALS_FILE = Path(__file__).parent / "credentials.json"


def _load_existing(token_file: Path) -> Credentials | None:
    if not token_file.exists():
        return None
    creds = Credentials.from_authorized_user_file(str(token_file))
    missing = set(SCOPES) - set(creds.scopes or [])
    if missing:
        # Older tokens lack drive.readonly; the consent screen has to run again
        print(f"Existing token at {token_file} is missing scopes: {', '.join(sorted(missing))}")
        return None
    print(f"Found existing token at {token_file}")
    return creds


def main() -> None:
    token_file = local_token_path()
    creds = _load_existing(token_file)

    if creds and creds.valid:
        print("Token is still valid, nothing to do.")
    else:
        if creds and creds.expired and creds.refresh_token:
            print("Refreshing expired token...")
            creds.refresh(Request())
        else:
            if not CREDENTIALS_FILE.exists():
                print(f"ERROR: {CREDENTIALS_FILE} not found!")
                print("Create a 'Desktop app' OAuth client at")
                print("https://console.cloud.google.com/apis/credentials")
                print(f"and save the downloaded JSON as {CREDENTIALS_FILE}")
                return

            print("Starting OAuth2 flow; a browser window will open.")
            flow = InstalledAppFlow.from_client_secrets_file(str(CREDENTIALS_FILE), SCOPES)
            creds = flow.run_local_server(port=0)

        token_file.parent.mkdir(parents=True, exist_ok=True)
        token_file.write_text(creds.to_json())
        print(f"Token saved to: {token_file}")

    print(f"\nScopes: {', '.join(sorted(creds.scopes or []))}")
    print("\nFor Cloud Run, upload the token to Secret Manager:")
    print(f"   gcloud secrets create {TOKEN_SECRET_NAME} --data-file={token_file}")
    print("   # or, if the secret already exists:")
    print(f"   gcloud secrets versions add {TOKEN_SECRET_NAME} --data-file={token_file}")


if __name__ == "__main__":
    main()

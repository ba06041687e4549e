#!/usr/bin/env python3
"""
One-time setup script to create the triage labels in Gmail.

Creates (or verifies) one label per triage outcome plus the agents'
tracking labels:
- "reply_needed" (Red)     - Someone is waiting for your answer
- "review" (Orange)        - Needs your attention or a decision
- "todo" (Green)           - A concrete task
- "fyi" (Blue)             - Informational only
- "todo_forwarded"         - Marker set by the todo forwarder
- "review_notified"        - Marker set by the review notifier

Usage:
    python scripts/setup_gmail_labels.py

Prerequisites:
    - Run `python scripts/gmail_auth.py` first to authenticate
    - Ensure token.json exists in scripts/ directory
"""

import sys

from inbox_triage.agents import review_notifier, todo_forwarder
from inbox_triage.classification.models import KNOWN_LABELS


def main() -> None:
    """Create Gmail labels for inbox triage."""
    print("=" * 60)
    print("Gmail Labels Setup for Inbox Triage")
    print("=" * 60)
    print()

    from inbox_triage.gmail.auth import get_gmail_service
    from inbox_triage.gmail.labels import GmailLabelManager

    try:
        service = get_gmail_service()
        print("[OK] Connected to Gmail API")
    except FileNotFoundError as e:
        print("[ERROR] Not authenticated!")
        print(f"       {e}")
        print()
        print("Run this first: python scripts/gmail_auth.py")
        sys.exit(1)
    except Exception as e:
        print(f"[ERROR] Failed to connect to Gmail: {e}")
        sys.exit(1)

    manager = GmailLabelManager(gmail_service=service)
    names = list(KNOWN_LABELS) + [todo_forwarder.MARKER_LABEL, review_notifier.MARKER_LABEL]

    print()
    print("Creating labels...")
    print("-" * 40)

    try:
        labels = manager.ensure_labels_exist(names)
    except Exception as e:
        print(f"[ERROR] Failed to create labels: {e}")
        sys.exit(1)

    print()
    print("Label Summary:")
    print("-" * 40)

    for name, label_id in labels.items():
        color = manager.LABEL_COLORS.get(name, {})
        bg_color = color.get("backgroundColor", "default")
        print(f"  {name}")
        print(f"    ID: {label_id}")
        print(f"    Color: {bg_color}")
        print()

    print("=" * 60)
    print("Setup complete!")
    print()
    print("Next steps:")
    print("  1. Copy config.yaml.example to config.yaml and fill it in")
    print("  2. Trigger a dry run: POST /triage/run with {\"dry_run\": true}")
    print("=" * 60)


if __name__ == "__main__":
    main()

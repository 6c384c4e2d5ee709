"""
secretpatch/notify.py — Slack notifications for finished runs.

In production: set SLACK_WEBHOOK_URL.
Without it the payload is only logged, so local runs stay quiet.
"""
import json
import logging

import requests

log = logging.getLogger(__name__)


def build_payload(message: str) -> dict:
    return {
        "text": f"*secretpatch*: {message}",
        "username": "secretpatch",
        "icon_emoji": ":lock:",
    }


def send_notification(message: str, webhook_url: str | None = None) -> bool:
    """Post message to Slack. Returns True when the webhook accepted it."""
    payload = build_payload(message)

    if not webhook_url:
        log.info(f"[SLACK MOCK] Would send: {json.dumps(payload)}")
        return False

    try:
        resp = requests.post(webhook_url, json=payload, timeout=5)
    except requests.RequestException as e:
        log.warning(f"Slack notification failed (non-fatal): {e}")
        return False

    if resp.status_code != 200:
        log.warning(f"Slack notification returned {resp.status_code} (non-fatal)")
        return False
    return True

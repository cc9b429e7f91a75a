from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from projecthub.settings import get_settings

logger = logging.getLogger(__name__)


def send_slack_alert(*, text: str) -> None:
    """
    Send a markdown-formatted alert to the configured Slack webhook.
    Missing configuration or a failing webhook is logged, never raised.
    """
    settings = get_settings()
    if not settings.SLACK_WEBHOOK_URL:
        logger.warning("Slack webhook not configured; skipping alert: %s", text)
        return

    payload: dict[str, Any] = {"text": text}
    try:
        with httpx.Client(timeout=10.0) as client:
            resp = client.post(settings.SLACK_WEBHOOK_URL, json=payload)
            resp.raise_for_status()
    except Exception as e:  # noqa: BLE001
        # Never crash the job just because Slack failed.
        logger.exception("Failed to send Slack alert: %s", e)


def format_alert(title: str, fields: dict[str, Optional[str]]) -> str:
    lines = [f"*{title}*", ""]
    for name, value in fields.items():
        lines.append(f"*{name}*: {value or 'N/A'}")
    return "\n".join(lines)


def notify_recording_failed(*, recording_id: str, user_id: str, title: str, error: str, terminal: bool) -> None:
    heading = "❌ Recording Upload Failed (Terminal After Retries)" if terminal else "❌ Recording Upload Failed (Permanent Error)"
    send_slack_alert(
        text=format_alert(
            heading,
            {"Recording ID": recording_id, "User ID": user_id, "Title": title, "Error": error},
        )
    )

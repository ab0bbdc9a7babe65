"""Slack alerts for operators when sweeps fail."""

import logging
from datetime import datetime
from typing import Optional

import httpx

from .models.types import NotificationSeverity

logger = logging.getLogger(__name__)

# Map severity to Slack colors
COLOR_MAP = {
    NotificationSeverity.INFO: "#36a64f",      # Green
    NotificationSeverity.WARNING: "#ff9900",   # Orange
    NotificationSeverity.ERROR: "#ff0000",     # Red
    NotificationSeverity.CRITICAL: "#990000",  # Dark Red
}

EMOJI_MAP = {
    NotificationSeverity.INFO: ":information_source:",
    NotificationSeverity.WARNING: ":warning:",
    NotificationSeverity.ERROR: ":x:",
    NotificationSeverity.CRITICAL: ":rotating_light:",
}


def build_slack_payload(message: str, severity: NotificationSeverity) -> dict:
    """Build a Slack attachment message."""
    return {
        "attachments": [
            {
                "color": COLOR_MAP.get(severity, "#808080"),
                "title": f"{EMOJI_MAP.get(severity, ':bell:')} GPU Capacity Watch",
                "text": message,
                "footer": "GPU Capacity Watch",
                "ts": int(datetime.now().timestamp()),
            }
        ]
    }


async def send_slack_alert(
    message: str,
    severity: NotificationSeverity,
    webhook_url: Optional[str],
    dry_run: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Send an alert to Slack.

    Args:
        message: The message to send
        severity: The severity level of the alert
        webhook_url: Slack incoming webhook URL; alerts are skipped if unset
        dry_run: Log the alert instead of sending it
        transport: Optional transport override, used by tests

    Returns:
        True if sent (or logged in dry run), False if no webhook configured

    Raises:
        httpx.HTTPError: If the Slack request fails
    """
    if not webhook_url:
        logger.info("No Slack webhook configured, skipping alert")
        return False

    if dry_run:
        logger.info(f"[DRY RUN] Would send Slack alert: {message}")
        return True

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(
                webhook_url,
                json=build_slack_payload(message, severity),
                timeout=10.0,
            )
            response.raise_for_status()

        logger.info("Successfully sent Slack alert")
        return True

    except httpx.HTTPError as e:
        logger.error(f"Failed to send Slack alert: {e}")
        raise

"""
Slack channel for alert notifications.

Posts alerts to a Slack incoming webhook as an attachment colored by
severity, with the metric values and suggested actions as fields.

Example:
    >>> slack = SlackTransport(webhook_url="https://hooks.slack.com/services/...")
    >>> await slack.send(alert)
    True
"""

from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from intelligent_alerts.detection.channels.base import (
    SEVERITY_EMOJI,
    HttpTransport,
    render_text,
)
from intelligent_alerts.models.alerts import Alert, AlertSeverity, ChannelType

logger = structlog.get_logger(__name__)

SEVERITY_COLORS: Dict[AlertSeverity, str] = {
    AlertSeverity.LOW: "#439FE0",
    AlertSeverity.MEDIUM: "warning",
    AlertSeverity.HIGH: "#FF8C00",
    AlertSeverity.CRITICAL: "danger",
}


class SlackTransport(HttpTransport):
    """
    Slack incoming webhook transport.

    Attributes:
        webhook_url: Slack incoming webhook URL.
        username: Display name override.
        template: Optional text template (see render_text).
    """

    def __init__(
        self,
        webhook_url: str,
        username: str = "Intelligent Alerts",
        template: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.webhook_url = webhook_url
        self.username = username
        self.template = template

        logger.info("slack_transport_initialized", username=username)

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.SLACK

    def build_payload(self, alert: Alert) -> Dict[str, Any]:
        """
        Build the webhook payload for an alert.

        Args:
            alert: Alert to format.

        Returns:
            Dict[str, Any]: Slack message payload.
        """
        fields: List[Dict[str, Any]] = [
            {"title": "Severity", "value": alert.severity.value, "short": True},
            {"title": "Source", "value": alert.source, "short": True},
        ]
        if alert.metric:
            fields.append({"title": "Metric", "value": alert.metric, "short": True})
        if alert.current_value is not None:
            fields.append(
                {"title": "Current", "value": f"{alert.current_value:g}", "short": True}
            )
        if alert.suggested_actions:
            fields.append(
                {
                    "title": "Suggested actions",
                    "value": "\n".join(f"• {a}" for a in alert.suggested_actions),
                    "short": False,
                }
            )

        return {
            "username": self.username,
            "text": f"{SEVERITY_EMOJI[alert.severity]} *{alert.title}*",
            "attachments": [
                {
                    "color": SEVERITY_COLORS[alert.severity],
                    "text": render_text(alert, self.template)
                    if self.template
                    else alert.message,
                    "fields": fields,
                    "footer": alert.id,
                    "ts": int(alert.timestamp.timestamp()),
                }
            ],
        }

    async def send(self, alert: Alert) -> bool:
        await self._post_json(self.webhook_url, self.build_payload(alert))
        logger.debug("slack_notification_sent", alert_id=alert.id)
        return True

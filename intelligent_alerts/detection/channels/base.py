"""
Shared helpers for notification transports.

Provides message rendering with optional per-channel templates and an
aiohttp based HttpTransport used by the Slack, Telegram and webhook
channels.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from intelligent_alerts.exceptions import ChannelDeliveryError
from intelligent_alerts.interfaces.transport import NotificationTransport
from intelligent_alerts.models.alerts import Alert, AlertSeverity

logger = structlog.get_logger(__name__)

SEVERITY_EMOJI: Dict[AlertSeverity, str] = {
    AlertSeverity.LOW: "ℹ️",
    AlertSeverity.MEDIUM: "⚠️",
    AlertSeverity.HIGH: "🔶",
    AlertSeverity.CRITICAL: "🚨",
}


def alert_context(alert: Alert) -> Dict[str, Any]:
    """
    Values available to message templates.

    Args:
        alert: Alert being rendered.

    Returns:
        Dict[str, Any]: Template context.
    """
    return {
        "id": alert.id,
        "type": alert.type.value,
        "severity": alert.severity.value,
        "severity_upper": alert.severity.value.upper(),
        "title": alert.title,
        "message": alert.message,
        "source": alert.source,
        "metric": alert.metric or "",
        "current_value": alert.current_value,
        "expected_value": alert.expected_value,
        "threshold": alert.threshold,
        "confidence": alert.confidence,
        "timestamp": alert.timestamp.isoformat(),
        "suggested_actions": "\n".join(f"- {a}" for a in alert.suggested_actions),
    }


def render_text(alert: Alert, template: Optional[str] = None) -> str:
    """
    Render an alert as plain text.

    Args:
        alert: Alert to render.
        template: str.format template using alert_context() keys. When
            missing or invalid, a default layout is used.

    Returns:
        str: Rendered text.
    """
    if template:
        try:
            return template.format(**alert_context(alert))
        except (KeyError, IndexError, ValueError) as e:
            logger.warning(
                "notification_template_invalid",
                alert_id=alert.id,
                error=str(e),
            )

    lines = [alert.summary(), f"Source: {alert.source}"]
    if alert.metric:
        lines.append(f"Metric: {alert.metric}")
    if alert.current_value is not None:
        lines.append(f"Current value: {alert.current_value:g}")
    if alert.threshold is not None:
        lines.append(f"Threshold: {alert.threshold:g}")
    if alert.suggested_actions:
        lines.append("Suggested actions:")
        lines.extend(f"- {a}" for a in alert.suggested_actions)
    return "\n".join(lines)


class HttpTransport(NotificationTransport):
    """
    Base class for transports that POST JSON over HTTP.

    The aiohttp session is created lazily and reused across sends.

    Attributes:
        timeout_seconds: Total request timeout.
    """

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._session = session

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": "intelligent-alerts/0.1"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("http_transport_session_closed", channel=self.channel_type.value)

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload.

        Args:
            url: Target URL.
            payload: JSON body.

        Returns:
            Any: Parsed JSON response, or None for non-JSON bodies.

        Raises:
            ChannelDeliveryError: On HTTP status >= 400, client errors or
                timeouts.
        """
        session = await self._ensure_session()
        channel = self.channel_type.value

        try:
            async with session.post(url, json=payload) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise ChannelDeliveryError(
                        f"{channel} delivery failed with status "
                        f"{response.status}: {error_text[:200]}",
                        channel=channel,
                        status=response.status,
                    )
                if response.content_type == "application/json":
                    return await response.json()
                return None

        except aiohttp.ClientError as e:
            raise ChannelDeliveryError(
                f"{channel} delivery failed: {e}",
                channel=channel,
            ) from e
        except asyncio.TimeoutError as e:
            raise ChannelDeliveryError(
                f"{channel} delivery timed out after {self.timeout_seconds}s",
                channel=channel,
            ) from e

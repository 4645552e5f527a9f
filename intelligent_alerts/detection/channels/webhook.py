"""
Generic webhook channel.

POSTs the full alert as JSON, wrapped in an envelope with the event name,
to a configured endpoint.
"""

from typing import Dict, Optional

import aiohttp
import structlog

from intelligent_alerts.detection.channels.base import HttpTransport
from intelligent_alerts.models.alerts import Alert, ChannelType

logger = structlog.get_logger(__name__)


class WebhookTransport(HttpTransport):
    """
    JSON webhook transport.

    Attributes:
        endpoint: Target URL.
        api_key: Optional bearer token sent in the Authorization header.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.endpoint = endpoint
        self.api_key = api_key

        logger.info("webhook_transport_initialized", endpoint=endpoint)

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.WEBHOOK

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers: Dict[str, str] = {"User-Agent": "intelligent-alerts/0.1"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers=headers,
            )
        return self._session

    async def send(self, alert: Alert) -> bool:
        await self._post_json(
            self.endpoint,
            {"event": "alert.created", "alert": alert.model_dump(mode="json")},
        )
        logger.debug("webhook_notification_sent", alert_id=alert.id)
        return True

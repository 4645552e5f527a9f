"""
Telegram channel for alert notifications.

Sends alerts through the Telegram Bot API sendMessage method.
"""

from typing import Optional

import aiohttp
import structlog

from intelligent_alerts.detection.channels.base import (
    SEVERITY_EMOJI,
    HttpTransport,
    render_text,
)
from intelligent_alerts.exceptions import ChannelDeliveryError
from intelligent_alerts.models.alerts import Alert, ChannelType

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramTransport(HttpTransport):
    """
    Telegram Bot API transport.

    Attributes:
        chat_id: Target chat identifier.
        api_url: Bot API base URL.
        template: Optional text template (see render_text).
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        template: Optional[str] = None,
        api_url: str = TELEGRAM_API_URL,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self._bot_token = bot_token
        self.chat_id = chat_id
        self.template = template
        self.api_url = api_url.rstrip("/")

        logger.info("telegram_transport_initialized", chat_id=chat_id)

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.TELEGRAM

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/bot{self._bot_token}/sendMessage"

    async def send(self, alert: Alert) -> bool:
        text = f"{SEVERITY_EMOJI[alert.severity]} {render_text(alert, self.template)}"
        result = await self._post_json(
            self.endpoint,
            {
                "chat_id": self.chat_id,
                "text": text,
                "disable_web_page_preview": True,
            },
        )

        if isinstance(result, dict) and not result.get("ok", False):
            raise ChannelDeliveryError(
                f"telegram rejected message: {result.get('description', 'unknown error')}",
                channel=self.channel_type.value,
                status=result.get("error_code"),
            )

        logger.debug("telegram_notification_sent", alert_id=alert.id)
        return True

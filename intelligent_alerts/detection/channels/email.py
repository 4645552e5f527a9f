"""
E-mail channel for alert notifications.

Sends a plain text message through an SMTP relay. smtplib is blocking, so
the delivery runs in a worker thread.

Example:
    >>> email = EmailTransport(
    ...     smtp=SmtpConfig(host="smtp.example.com", port=587, use_tls=True),
    ...     recipients=["ops@example.com"],
    ... )
    >>> await email.send(alert)
    True
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import structlog

from intelligent_alerts.config.models import SmtpConfig
from intelligent_alerts.detection.channels.base import render_text
from intelligent_alerts.exceptions import ChannelDeliveryError
from intelligent_alerts.interfaces.transport import NotificationTransport
from intelligent_alerts.models.alerts import Alert, ChannelType

logger = structlog.get_logger(__name__)


class EmailTransport(NotificationTransport):
    """
    SMTP e-mail transport.

    Attributes:
        smtp: Relay settings.
        recipients: Destination addresses.
        template: Optional body template (see render_text).
        timeout_seconds: SMTP socket timeout.
    """

    def __init__(
        self,
        smtp: SmtpConfig,
        recipients: List[str],
        template: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.smtp = smtp
        self.recipients = recipients
        self.template = template
        self.timeout_seconds = timeout_seconds

        logger.info(
            "email_transport_initialized",
            host=smtp.host,
            port=smtp.port,
            recipients=len(recipients),
        )

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.EMAIL

    def build_message(self, alert: Alert) -> MIMEMultipart:
        """
        Build the MIME message for an alert.

        Args:
            alert: Alert to format.

        Returns:
            MIMEMultipart: Message ready to send.
        """
        msg = MIMEMultipart()
        msg["From"] = self.smtp.sender
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = f"[{alert.severity.value.upper()}] {alert.title}"
        msg.attach(MIMEText(render_text(alert, self.template), "plain"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=self.timeout_seconds) as server:
            if self.smtp.use_tls:
                server.starttls()
            if self.smtp.username:
                server.login(self.smtp.username, self.smtp.password or "")
            server.send_message(msg)

    async def send(self, alert: Alert) -> bool:
        if not self.recipients:
            logger.warning("email_no_recipients", alert_id=alert.id)
            return False

        msg = self.build_message(alert)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError(
                f"email delivery failed: {e}",
                channel=self.channel_type.value,
            ) from e

        logger.debug(
            "email_notification_sent",
            alert_id=alert.id,
            recipients=len(self.recipients),
        )
        return True

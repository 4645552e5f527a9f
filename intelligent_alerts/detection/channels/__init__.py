"""
Alert notification channels.

This module contains the transports for each notification channel type.

Components:
    dashboard: Notification store row + Redis pub/sub
    email: SMTP e-mail
    slack: Slack incoming webhook
    telegram: Telegram Bot API
    webhook: Generic JSON webhook

Example:
    >>> from intelligent_alerts.detection.channels import SlackTransport
    >>>
    >>> slack = SlackTransport(webhook_url="https://hooks.slack.com/...")
    >>> await slack.send(alert)
"""

from intelligent_alerts.detection.channels.base import (
    HttpTransport,
    alert_context,
    render_text,
)
from intelligent_alerts.detection.channels.dashboard import DashboardTransport
from intelligent_alerts.detection.channels.email import EmailTransport
from intelligent_alerts.detection.channels.slack import SlackTransport
from intelligent_alerts.detection.channels.telegram import TelegramTransport
from intelligent_alerts.detection.channels.webhook import WebhookTransport

__all__ = [
    # Shared
    "HttpTransport",
    "alert_context",
    "render_text",
    # Transports
    "DashboardTransport",
    "EmailTransport",
    "SlackTransport",
    "TelegramTransport",
    "WebhookTransport",
]

"""
Tests for channel routing, the channel dispatcher and the transports.

Remote transports are exercised with their HTTP/SMTP calls mocked out.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from intelligent_alerts.config.models import ChannelsConfig, SmtpConfig
from intelligent_alerts.detection.channels import (
    DashboardTransport,
    EmailTransport,
    SlackTransport,
    TelegramTransport,
    WebhookTransport,
    render_text,
)
from intelligent_alerts.detection.dispatcher import (
    ChannelDispatcher,
    ChannelRegistry,
    build_transports,
    channels_for_severity,
)
from intelligent_alerts.exceptions import ChannelDeliveryError
from intelligent_alerts.models.alerts import AlertSeverity, ChannelType
from tests.factories import RecordingTransport, channel


class TestRouting:
    """Test cases for severity based channel selection."""

    def test_default_routing(self):
        assert channels_for_severity(AlertSeverity.LOW) == [ChannelType.DASHBOARD]
        assert channels_for_severity(AlertSeverity.MEDIUM) == [
            ChannelType.DASHBOARD,
            ChannelType.EMAIL,
        ]
        assert channels_for_severity(AlertSeverity.HIGH) == [
            ChannelType.DASHBOARD,
            ChannelType.EMAIL,
            ChannelType.SLACK,
        ]
        assert channels_for_severity(AlertSeverity.CRITICAL) == [
            ChannelType.DASHBOARD,
            ChannelType.EMAIL,
            ChannelType.SLACK,
            ChannelType.TELEGRAM,
        ]

    def test_routing_returns_a_copy(self):
        first = channels_for_severity(AlertSeverity.LOW)
        first.append(ChannelType.WEBHOOK)

        assert channels_for_severity(AlertSeverity.LOW) == [ChannelType.DASHBOARD]

    def test_configured_routing_always_includes_dashboard(self):
        config = ChannelsConfig(routing={AlertSeverity.HIGH: [ChannelType.WEBHOOK]})
        registry = ChannelRegistry.from_config(config)

        assert registry.channels_for_severity(AlertSeverity.HIGH) == [
            ChannelType.DASHBOARD,
            ChannelType.WEBHOOK,
        ]
        assert registry.channels_for_severity(AlertSeverity.LOW) == [ChannelType.DASHBOARD]


class TestChannelRegistry:
    """Test cases for ChannelRegistry."""

    def test_dashboard_always_present(self):
        registry = ChannelRegistry()

        assert registry.enabled_types() == [ChannelType.DASHBOARD]

    def test_dashboard_cannot_be_disabled(self):
        registry = ChannelRegistry()

        registry.reconfigure(
            channel(ChannelType.DASHBOARD, [AlertSeverity.CRITICAL], enabled=False)
        )

        dashboard = registry.get(ChannelType.DASHBOARD)
        assert dashboard.enabled is True
        assert dashboard.severity_filter == list(AlertSeverity)

    def test_reconfigure_replaces_channel(self):
        registry = ChannelRegistry([channel(ChannelType.SLACK, [AlertSeverity.CRITICAL])])

        registry.reconfigure(channel(ChannelType.SLACK, [AlertSeverity.HIGH]))

        assert registry.get(ChannelType.SLACK).severity_filter == [AlertSeverity.HIGH]


class TestChannelDispatcher:
    """Test cases for ChannelDispatcher.dispatch."""

    @pytest.fixture
    def transports(self):
        return {
            ChannelType.DASHBOARD: RecordingTransport(ChannelType.DASHBOARD),
            ChannelType.EMAIL: RecordingTransport(ChannelType.EMAIL),
            ChannelType.SLACK: RecordingTransport(ChannelType.SLACK),
        }

    @pytest.fixture
    def registry(self):
        return ChannelRegistry(
            [
                channel(ChannelType.EMAIL, [AlertSeverity.MEDIUM, AlertSeverity.HIGH, AlertSeverity.CRITICAL]),
                channel(ChannelType.SLACK, [AlertSeverity.CRITICAL]),
            ]
        )

    @pytest.mark.asyncio
    async def test_severity_filter(self, registry, transports, make_alert):
        dispatcher = ChannelDispatcher(registry, transports)
        alert = make_alert(
            severity=AlertSeverity.HIGH,
            notification_channels=channels_for_severity(AlertSeverity.HIGH),
        )

        delivered = await dispatcher.dispatch(alert)

        assert delivered == 2
        assert transports[ChannelType.DASHBOARD].sent == [alert]
        assert transports[ChannelType.EMAIL].sent == [alert]
        assert transports[ChannelType.SLACK].sent == []

    @pytest.mark.asyncio
    async def test_disabled_channel_is_skipped(self, transports, make_alert):
        registry = ChannelRegistry([channel(ChannelType.EMAIL, enabled=False)])
        dispatcher = ChannelDispatcher(registry, transports)
        alert = make_alert(notification_channels=[ChannelType.DASHBOARD, ChannelType.EMAIL])

        assert await dispatcher.dispatch(alert) == 1
        assert transports[ChannelType.EMAIL].sent == []

    @pytest.mark.asyncio
    async def test_unconfigured_channel_is_skipped(self, transports, make_alert):
        dispatcher = ChannelDispatcher(ChannelRegistry(), transports)
        alert = make_alert(notification_channels=[ChannelType.DASHBOARD, ChannelType.TELEGRAM])

        assert await dispatcher.dispatch(alert) == 1

    @pytest.mark.asyncio
    async def test_failing_channel_does_not_stop_others(self, registry, transports, make_alert):
        failing = AsyncMock()
        failing.send.side_effect = ChannelDeliveryError("bad gateway", channel="email", status=502)
        transports[ChannelType.EMAIL] = failing
        dispatcher = ChannelDispatcher(registry, transports)
        alert = make_alert(
            severity=AlertSeverity.CRITICAL,
            notification_channels=channels_for_severity(AlertSeverity.CRITICAL),
        )

        delivered = await dispatcher.dispatch(alert)

        assert delivered == 2
        failing.send.assert_awaited_once_with(alert)
        assert transports[ChannelType.SLACK].sent == [alert]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, registry, transports, make_alert):
        failing = AsyncMock()
        failing.send.side_effect = KeyError("template")
        transports[ChannelType.DASHBOARD] = failing
        dispatcher = ChannelDispatcher(registry, transports)

        assert await dispatcher.dispatch(make_alert(severity=AlertSeverity.LOW)) == 0

    @pytest.mark.asyncio
    async def test_slow_channel_times_out(self, registry, transports, make_alert):
        async def slow_send(alert):
            await asyncio.sleep(1)
            return True

        slow = AsyncMock()
        slow.send.side_effect = slow_send
        transports[ChannelType.EMAIL] = slow
        dispatcher = ChannelDispatcher(registry, transports, timeout_seconds=0.01)
        alert = make_alert(
            severity=AlertSeverity.MEDIUM,
            notification_channels=[ChannelType.DASHBOARD, ChannelType.EMAIL],
        )

        assert await dispatcher.dispatch(alert) == 1

    @pytest.mark.asyncio
    async def test_channels_are_sent_one_after_another(self, registry, make_alert):
        events = []

        def recording(channel_type):
            async def send(alert):
                events.append(("start", channel_type))
                await asyncio.sleep(0)
                events.append(("end", channel_type))
                return True

            transport = AsyncMock()
            transport.send.side_effect = send
            return transport

        transports = {
            c: recording(c) for c in (ChannelType.DASHBOARD, ChannelType.EMAIL, ChannelType.SLACK)
        }
        dispatcher = ChannelDispatcher(registry, transports)
        alert = make_alert(
            severity=AlertSeverity.CRITICAL,
            notification_channels=[ChannelType.DASHBOARD, ChannelType.EMAIL, ChannelType.SLACK],
        )

        assert await dispatcher.dispatch(alert) == 3
        assert events == [
            ("start", ChannelType.DASHBOARD),
            ("end", ChannelType.DASHBOARD),
            ("start", ChannelType.EMAIL),
            ("end", ChannelType.EMAIL),
            ("start", ChannelType.SLACK),
            ("end", ChannelType.SLACK),
        ]

    @pytest.mark.asyncio
    async def test_rejected_delivery_is_not_counted(self, make_alert):
        dispatcher = ChannelDispatcher(
            ChannelRegistry(),
            {ChannelType.DASHBOARD: RecordingTransport(result=False)},
        )

        assert await dispatcher.dispatch(make_alert()) == 0

    @pytest.mark.asyncio
    async def test_reconfigure_applies_to_existing_alerts(self, registry, transports, make_alert):
        """The snapshot lists channels; filters are read at delivery time."""
        dispatcher = ChannelDispatcher(registry, transports)
        alert = make_alert(
            severity=AlertSeverity.HIGH,
            notification_channels=[ChannelType.DASHBOARD, ChannelType.SLACK],
        )

        dispatcher.reconfigure(channel(ChannelType.SLACK, [AlertSeverity.HIGH, AlertSeverity.CRITICAL]))

        assert await dispatcher.dispatch(alert) == 2

    @pytest.mark.asyncio
    async def test_close_closes_transports(self, registry, transports):
        dispatcher = ChannelDispatcher(registry, transports)

        await dispatcher.close()

        assert all(t.closed for t in transports.values())


class TestBuildTransports:
    """Test cases for build_transports."""

    def test_only_enabled_channels_get_transports(self, notification_store):
        config = ChannelsConfig(
            channels={
                ChannelType.SLACK: channel(ChannelType.SLACK, endpoint="https://hooks.slack.test/x"),
                ChannelType.TELEGRAM: channel(ChannelType.TELEGRAM, enabled=False),
                ChannelType.WEBHOOK: channel(ChannelType.WEBHOOK, endpoint="https://hooks.test/alerts"),
            }
        )

        transports = build_transports(config, notification_store)

        assert set(transports) == {ChannelType.DASHBOARD, ChannelType.SLACK, ChannelType.WEBHOOK}
        assert isinstance(transports[ChannelType.SLACK], SlackTransport)
        assert isinstance(transports[ChannelType.WEBHOOK], WebhookTransport)
        assert isinstance(transports[ChannelType.DASHBOARD], DashboardTransport)


class TestTransports:
    """Test cases for the individual transports."""

    @pytest.mark.asyncio
    async def test_dashboard_writes_notification_row(self, notification_store, make_alert):
        transport = DashboardTransport(store=notification_store)
        alert = make_alert()

        assert await transport.send(alert) is True
        assert notification_store.notifications[0]["alert_id"] == alert.id
        assert notification_store.notifications[0]["severity"] == "high"

    @pytest.mark.asyncio
    async def test_dashboard_publish_failure_is_not_fatal(self, notification_store, make_alert):
        from intelligent_alerts.storage.redis_client import RedisOperationError

        redis = MagicMock()
        redis.is_connected = True
        redis.publish_alert = AsyncMock(side_effect=RedisOperationError("down"))
        transport = DashboardTransport(store=notification_store, redis=redis)

        assert await transport.send(make_alert()) is True
        assert len(notification_store.notifications) == 1

    def test_slack_payload(self, make_alert):
        transport = SlackTransport(webhook_url="https://hooks.slack.test/x")
        alert = make_alert(severity=AlertSeverity.CRITICAL, suggested_actions=["Review error logs"])

        payload = transport.build_payload(alert)

        assert payload["text"].endswith("*High error rate detected*")
        attachment = payload["attachments"][0]
        assert attachment["color"] == "danger"
        assert attachment["footer"] == alert.id
        assert {"title": "Metric", "value": "error_rate", "short": True} in attachment["fields"]

    @pytest.mark.asyncio
    async def test_slack_send_posts_payload(self, make_alert):
        transport = SlackTransport(webhook_url="https://hooks.slack.test/x")
        alert = make_alert()

        with patch.object(transport, "_post_json", AsyncMock(return_value=None)) as post:
            assert await transport.send(alert) is True

        post.assert_awaited_once()
        assert post.await_args.args[0] == "https://hooks.slack.test/x"

    @pytest.mark.asyncio
    async def test_telegram_rejection_raises(self, make_alert):
        transport = TelegramTransport(bot_token="123:abc", chat_id="42")
        response = {"ok": False, "error_code": 400, "description": "chat not found"}

        with patch.object(transport, "_post_json", AsyncMock(return_value=response)):
            with pytest.raises(ChannelDeliveryError) as exc_info:
                await transport.send(make_alert())

        assert exc_info.value.status == 400
        assert transport.endpoint == "https://api.telegram.org/bot123:abc/sendMessage"

    @pytest.mark.asyncio
    async def test_webhook_posts_alert_json(self, make_alert):
        transport = WebhookTransport(endpoint="https://hooks.test/alerts")
        alert = make_alert()

        with patch.object(transport, "_post_json", AsyncMock(return_value={"ok": True})) as post:
            assert await transport.send(alert) is True

        body = post.await_args.args[1]
        assert body["event"] == "alert.created"
        assert body["alert"]["id"] == alert.id
        assert body["alert"]["severity"] == "high"

    def test_email_message(self, make_alert):
        transport = EmailTransport(
            smtp=SmtpConfig(sender="alerts@example.com"),
            recipients=["ops@example.com", "oncall@example.com"],
        )

        msg = transport.build_message(make_alert())

        assert msg["Subject"] == "[HIGH] High error rate detected"
        assert msg["To"] == "ops@example.com, oncall@example.com"
        assert msg["From"] == "alerts@example.com"

    @pytest.mark.asyncio
    async def test_email_smtp_failure_raises_delivery_error(self, make_alert):
        transport = EmailTransport(smtp=SmtpConfig(), recipients=["ops@example.com"])

        with patch.object(transport, "_send_sync", side_effect=OSError("connection refused")):
            with pytest.raises(ChannelDeliveryError):
                await transport.send(make_alert())

    @pytest.mark.asyncio
    async def test_email_without_recipients(self, make_alert):
        transport = EmailTransport(smtp=SmtpConfig(), recipients=[])

        assert await transport.send(make_alert()) is False


class TestRenderText:
    """Test cases for render_text."""

    def test_template(self, make_alert):
        text = render_text(make_alert(), "{severity_upper}: {title} ({metric})")

        assert text == "HIGH: High error rate detected (error_rate)"

    def test_invalid_template_falls_back(self, make_alert):
        alert = make_alert()

        text = render_text(alert, "{unknown_key}")

        assert text.startswith(alert.summary())

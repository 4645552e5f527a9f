"""
Channel registry and dispatcher for routing alerts to notification channels.

This module provides the ChannelRegistry, which holds the configured
notification channels and the severity routing table, and the
ChannelDispatcher, which delivers an alert to every channel in its
snapshot that is enabled and accepts its severity.

Key Features:
    - Severity based channel selection (snapshot taken at alert creation)
    - Per-channel enabled flag and severity filter
    - Per-channel timeout and failure isolation
    - Runtime reconfiguration of individual channels

Example:
    >>> registry = ChannelRegistry.from_config(config.channels)
    >>> dispatcher = ChannelDispatcher(
    ...     registry=registry,
    ...     transports={ChannelType.DASHBOARD: dashboard_transport},
    ... )
    >>> await dispatcher.dispatch(alert)
    1
"""

import asyncio
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import structlog

from intelligent_alerts.config.models import DEFAULT_SEVERITY_CHANNELS, ChannelsConfig
from intelligent_alerts.exceptions import ChannelDeliveryError
from intelligent_alerts.interfaces.repository import NotificationStore
from intelligent_alerts.interfaces.transport import NotificationTransport
from intelligent_alerts.models.alerts import (
    Alert,
    AlertSeverity,
    ChannelType,
    NotificationChannel,
)

if TYPE_CHECKING:
    from intelligent_alerts.storage.redis_client import RedisClient

logger = structlog.get_logger(__name__)


def channels_for_severity(
    severity: AlertSeverity,
    routing: Optional[Dict[AlertSeverity, List[ChannelType]]] = None,
) -> List[ChannelType]:
    """
    Channels an alert of the given severity is routed to.

    Args:
        severity: Alert severity.
        routing: Severity routing table. Defaults to
            DEFAULT_SEVERITY_CHANNELS.

    Returns:
        List[ChannelType]: A new list, always starting with the dashboard.

    Example:
        >>> channels_for_severity(AlertSeverity.HIGH)
        [<ChannelType.DASHBOARD: 'dashboard'>, <ChannelType.EMAIL: 'email'>, <ChannelType.SLACK: 'slack'>]
    """
    table = routing if routing is not None else DEFAULT_SEVERITY_CHANNELS
    return list(table.get(severity, [ChannelType.DASHBOARD]))


class ChannelRegistry:
    """
    Process-wide notification channel configuration.

    Channels are immutable models; reconfigure() swaps a channel
    atomically. The dashboard channel always exists and accepts every
    severity.

    Attributes:
        routing: Severity to channel types table used for new alerts.
    """

    def __init__(
        self,
        channels: Optional[Iterable[NotificationChannel]] = None,
        routing: Optional[Dict[AlertSeverity, List[ChannelType]]] = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            channels: Configured channels. A dashboard channel is added
                when missing.
            routing: Severity routing table; defaults to
                DEFAULT_SEVERITY_CHANNELS.
        """
        self._channels: Dict[ChannelType, NotificationChannel] = {
            c.type: c for c in channels or []
        }
        if ChannelType.DASHBOARD not in self._channels:
            self._channels[ChannelType.DASHBOARD] = NotificationChannel(
                type=ChannelType.DASHBOARD,
                severity_filter=list(AlertSeverity),
            )
        self.routing = routing if routing is not None else {
            s: list(t) for s, t in DEFAULT_SEVERITY_CHANNELS.items()
        }

        logger.info(
            "channel_registry_initialized",
            enabled_channels=[t.value for t in self.enabled_types()],
        )

    @classmethod
    def from_config(cls, config: ChannelsConfig) -> "ChannelRegistry":
        """
        Build a registry from validated channel configuration.

        Args:
            config: ChannelsConfig produced by the loader.

        Returns:
            ChannelRegistry: New registry.
        """
        return cls(
            channels=config.channels.values(),
            routing={s: list(t) for s, t in config.routing.items()},
        )

    def get(self, channel_type: ChannelType) -> Optional[NotificationChannel]:
        """Get a configured channel by type."""
        return self._channels.get(channel_type)

    def all(self) -> List[NotificationChannel]:
        """Every configured channel."""
        return list(self._channels.values())

    def enabled_types(self) -> List[ChannelType]:
        """Types of channels that are enabled."""
        return [t for t, c in self._channels.items() if c.enabled]

    def channels_for_severity(self, severity: AlertSeverity) -> List[ChannelType]:
        """
        Channel snapshot for a new alert of the given severity.

        Args:
            severity: Alert severity.

        Returns:
            List[ChannelType]: Channel types from the routing table.
        """
        return channels_for_severity(severity, self.routing)

    def reconfigure(self, channel: NotificationChannel) -> None:
        """
        Replace (or add) a channel.

        The dashboard channel keeps accepting every severity.

        Args:
            channel: New channel configuration.
        """
        if channel.type == ChannelType.DASHBOARD:
            channel = channel.model_copy(
                update={"enabled": True, "severity_filter": list(AlertSeverity)}
            )
        self._channels[channel.type] = channel
        logger.info(
            "channel_reconfigured",
            channel=channel.type.value,
            enabled=channel.enabled,
            severity_filter=[s.value for s in channel.severity_filter],
        )


class ChannelDispatcher:
    """
    Delivers alerts to their notification channels.

    For each channel type in the alert's snapshot, the dispatcher looks
    up the registry entry and skips channels that are missing, disabled,
    or whose severity filter excludes the alert. Each send is bounded by
    a timeout; a failing channel never prevents the others.

    Attributes:
        registry: Channel configuration.
        transports: Transport per channel type.
        timeout_seconds: Upper bound for each send.

    Example:
        >>> dispatcher = ChannelDispatcher(registry, transports, timeout_seconds=10)
        >>> count = await dispatcher.dispatch(alert)
        >>> print(f"Delivered to {count} channels")
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        transports: Dict[ChannelType, NotificationTransport],
        timeout_seconds: float = 10.0,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            registry: Channel configuration.
            transports: Transport per channel type.
            timeout_seconds: Upper bound for each send.
        """
        self.registry = registry
        self.transports = transports
        self.timeout_seconds = timeout_seconds

        logger.info(
            "channel_dispatcher_initialized",
            transports=[t.value for t in transports.keys()],
            timeout_seconds=timeout_seconds,
        )

    async def dispatch(
        self,
        alert: Alert,
        channels: Optional[List[ChannelType]] = None,
    ) -> int:
        """
        Deliver an alert to its channels.

        Args:
            alert: The Alert to deliver.
            channels: Explicit channel types; defaults to the alert's
                notification_channels snapshot.

        Returns:
            int: Number of successful deliveries.
        """
        if channels is None:
            channels = alert.notification_channels

        delivered = 0

        for channel_type in channels:
            channel = self.registry.get(channel_type)
            if channel is None or not channel.accepts(alert.severity):
                logger.debug(
                    "channel_skipped",
                    channel=channel_type.value,
                    alert_id=alert.id,
                    configured=channel is not None,
                )
                continue

            transport = self.transports.get(channel_type)
            if transport is None:
                logger.warning(
                    "channel_transport_missing",
                    channel=channel_type.value,
                    alert_id=alert.id,
                )
                continue

            try:
                ok = await asyncio.wait_for(
                    transport.send(alert),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.error(
                    "channel_dispatch_timeout",
                    channel=channel_type.value,
                    alert_id=alert.id,
                    timeout_seconds=self.timeout_seconds,
                )
                continue
            except ChannelDeliveryError as e:
                logger.error(
                    "channel_dispatch_failed",
                    channel=channel_type.value,
                    alert_id=alert.id,
                    status=e.status,
                    error=str(e),
                )
                continue
            except Exception as e:
                logger.error(
                    "channel_dispatch_failed",
                    channel=channel_type.value,
                    alert_id=alert.id,
                    error=str(e),
                )
                continue

            if ok:
                delivered += 1
                logger.debug(
                    "alert_dispatched_to_channel",
                    channel=channel_type.value,
                    alert_id=alert.id,
                    severity=alert.severity.value,
                )
            else:
                logger.warning(
                    "channel_delivery_rejected",
                    channel=channel_type.value,
                    alert_id=alert.id,
                )

        logger.info(
            "alert_dispatch_complete",
            alert_id=alert.id,
            dispatched_to=delivered,
            total_channels=len(channels),
        )

        return delivered

    def reconfigure(
        self,
        channel: NotificationChannel,
        transport: Optional[NotificationTransport] = None,
    ) -> None:
        """
        Swap a channel's configuration and, optionally, its transport.

        Args:
            channel: New channel configuration.
            transport: Transport to use from now on for this channel type.
        """
        self.registry.reconfigure(channel)
        if transport is not None:
            self.transports[channel.type] = transport

    async def close(self) -> None:
        """Close every transport."""
        for channel_type, transport in self.transports.items():
            try:
                await transport.close()
            except Exception as e:
                logger.warning(
                    "channel_transport_close_failed",
                    channel=channel_type.value,
                    error=str(e),
                )


def build_transports(
    config: ChannelsConfig,
    store: NotificationStore,
    redis: Optional["RedisClient"] = None,
    timeout_seconds: float = 10.0,
) -> Dict[ChannelType, NotificationTransport]:
    """
    Create a transport for every enabled channel.

    Args:
        config: Validated channel configuration.
        store: Notification store used by the dashboard channel.
        redis: Optional Redis client for live dashboard fan-out.
        timeout_seconds: Network timeout for remote transports.

    Returns:
        Dict[ChannelType, NotificationTransport]: Transports keyed by type.
    """
    from intelligent_alerts.detection.channels import (
        DashboardTransport,
        EmailTransport,
        SlackTransport,
        TelegramTransport,
        WebhookTransport,
    )

    transports: Dict[ChannelType, NotificationTransport] = {
        ChannelType.DASHBOARD: DashboardTransport(store=store, redis=redis),
    }

    for channel_type, channel in config.channels.items():
        if not channel.enabled or channel_type == ChannelType.DASHBOARD:
            continue
        settings = channel.config
        template = settings.get("template")

        if channel_type == ChannelType.EMAIL:
            transports[channel_type] = EmailTransport(
                smtp=config.smtp,
                recipients=list(settings.get("recipients", [])),
                template=template,
                timeout_seconds=timeout_seconds,
            )
        elif channel_type == ChannelType.SLACK:
            transports[channel_type] = SlackTransport(
                webhook_url=settings["endpoint"],
                template=template,
                timeout_seconds=timeout_seconds,
            )
        elif channel_type == ChannelType.TELEGRAM:
            transports[channel_type] = TelegramTransport(
                bot_token=settings["api_key"],
                chat_id=str(settings["chat_id"]),
                template=template,
                timeout_seconds=timeout_seconds,
            )
        elif channel_type == ChannelType.WEBHOOK:
            transports[channel_type] = WebhookTransport(
                endpoint=settings["endpoint"],
                api_key=settings.get("api_key"),
                timeout_seconds=timeout_seconds,
            )

    return transports


def create_dispatcher(
    config: ChannelsConfig,
    store: NotificationStore,
    redis: Optional["RedisClient"] = None,
    timeout_seconds: float = 10.0,
) -> ChannelDispatcher:
    """
    Factory function to create a ChannelDispatcher from configuration.

    Args:
        config: Validated channel configuration.
        store: Notification store used by the dashboard channel.
        redis: Optional Redis client for live dashboard fan-out.
        timeout_seconds: Upper bound for each send.

    Returns:
        ChannelDispatcher: Dispatcher with a registry and transports.

    Example:
        >>> dispatcher = create_dispatcher(app_config.channels, store)
        >>> dispatcher.registry.enabled_types()
        [<ChannelType.DASHBOARD: 'dashboard'>]
    """
    return ChannelDispatcher(
        registry=ChannelRegistry.from_config(config),
        transports=build_transports(config, store, redis, timeout_seconds),
        timeout_seconds=timeout_seconds,
    )

"""
Abstract base class for notification transports.

One transport exists per channel type (dashboard, email, slack, telegram,
webhook). The dispatcher decides whether an alert goes to a channel; the
transport only performs the delivery.

Example:
    >>> class ConsoleTransport(NotificationTransport):
    ...     @property
    ...     def channel_type(self) -> ChannelType:
    ...         return ChannelType.DASHBOARD
    ...
    ...     async def send(self, alert: Alert) -> bool:
    ...         print(alert.summary())
    ...         return True
"""

from abc import ABC, abstractmethod

from intelligent_alerts.models.alerts import Alert, ChannelType


class NotificationTransport(ABC):
    """Delivers an alert over a single channel."""

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """
        Channel this transport delivers to.

        Returns:
            ChannelType: Channel identifier.
        """
        pass

    @abstractmethod
    async def send(self, alert: Alert) -> bool:
        """
        Deliver an alert.

        Args:
            alert: Alert to deliver.

        Returns:
            bool: True if the remote end accepted the notification.

        Raises:
            ChannelDeliveryError: On transport level failures. The
                dispatcher logs and contains these.
        """
        pass

    async def close(self) -> None:
        """Release any held resources (sessions, connections)."""
        return None

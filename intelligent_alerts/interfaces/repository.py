"""
Abstract base classes for alert persistence.

AlertRepository stores alert state (write-through from the in-memory
active set). NotificationStore receives the rows rendered by the
dashboard channel.
"""

from abc import ABC, abstractmethod
from typing import List

from intelligent_alerts.models.alerts import Alert


class AlertRepository(ABC):
    """
    Durable alert storage.

    The engine keeps the active set in memory; the repository is written
    on every state change and read once at startup.
    """

    @abstractmethod
    async def upsert(self, alert: Alert) -> None:
        """
        Insert or update an alert by id.

        Args:
            alert: Alert to store.
        """
        pass

    @abstractmethod
    async def load_unresolved(self) -> List[Alert]:
        """
        Load every alert that is not resolved.

        Returns:
            List[Alert]: Unresolved alerts, oldest first.
        """
        pass


class NotificationStore(ABC):
    """Sink for dashboard notifications."""

    @abstractmethod
    async def insert_notification(self, alert: Alert) -> None:
        """
        Record an alert for display on a dashboard.

        Args:
            alert: Alert to record.
        """
        pass

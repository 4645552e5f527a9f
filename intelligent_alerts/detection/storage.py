"""
Alert storage: in-memory active set with write-through persistence.

This module provides the AlertStorage class which owns the engine's active
alerts and alert history. The in-memory active set is the source of truth;
every mutation is written through to the AlertRepository on a best-effort,
timeout-bounded basis.

Key Features:
    - Active set keyed by alert id
    - Bounded alert history shared with the active set (same objects)
    - Duplicate lookup by (type, metric, severity) within a window
    - Best-effort persistence that never raises into the caller
    - Single asyncio.Lock shared by the pipeline and lifecycle sweeps

Example:
    >>> storage = AlertStorage(repository, io_timeout_seconds=10)
    >>> storage.add(alert)
    >>> await storage.persist(alert)
    True
    >>> storage.get(alert.id) is alert
    True
"""

import asyncio
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, List, Optional

import structlog

from intelligent_alerts.interfaces.repository import AlertRepository
from intelligent_alerts.models.alerts import Alert, AlertStatistics

logger = structlog.get_logger(__name__)

DEFAULT_DEDUP_WINDOW = timedelta(hours=1)
DEFAULT_HISTORY_LIMIT = 10000


class AlertStorage:
    """
    Active alerts and alert history for a single engine instance.

    Callers must hold `lock` while mutating the active set. Persistence
    failures are logged and the alert stays active in memory.

    Attributes:
        repository: Durable alert store, or None for memory-only operation.
        io_timeout_seconds: Upper bound for each repository call.
        lock: Guards the active set and the rate limit counters.

    Example:
        >>> storage = AlertStorage(repository=None)
        >>> storage.add(alert)
        >>> len(storage)
        1
    """

    def __init__(
        self,
        repository: Optional[AlertRepository] = None,
        io_timeout_seconds: float = 10.0,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """
        Initialize the alert storage.

        Args:
            repository: Durable alert store; None keeps alerts in memory only.
            io_timeout_seconds: Upper bound for each repository call.
            history_limit: Maximum number of alerts kept in history.
        """
        self.repository = repository
        self.io_timeout_seconds = io_timeout_seconds
        self.lock = asyncio.Lock()

        self._active: Dict[str, Alert] = {}
        self._history: Deque[Alert] = deque(maxlen=history_limit)

        logger.debug(
            "alert_storage_initialized",
            persistent=repository is not None,
            history_limit=history_limit,
        )

    def add(self, alert: Alert) -> None:
        """
        Insert an accepted alert into the active set and the history.

        Args:
            alert: Accepted alert.
        """
        self._active[alert.id] = alert
        self._history.append(alert)

    def get(self, alert_id: str) -> Optional[Alert]:
        """Get an active alert by id."""
        return self._active.get(alert_id)

    def remove(self, alert_id: str) -> Optional[Alert]:
        """Remove an alert from the active set, returning it if present."""
        return self._active.pop(alert_id, None)

    def active_alerts(self) -> List[Alert]:
        """Every alert in the active set, oldest first."""
        return sorted(self._active.values(), key=lambda a: a.timestamp)

    def history(self) -> List[Alert]:
        """Accepted alerts in acceptance order."""
        return list(self._history)

    def find_duplicate(
        self,
        candidate: Alert,
        now: datetime,
        window: timedelta = DEFAULT_DEDUP_WINDOW,
    ) -> Optional[Alert]:
        """
        Find an unresolved active alert for the same incident.

        Args:
            candidate: New candidate alert.
            now: Current time.
            window: Only alerts created within this window count.

        Returns:
            Optional[Alert]: The matching active alert, if any.
        """
        cutoff = now - window
        for existing in self._active.values():
            if (
                not existing.resolved
                and existing.dedup_key == candidate.dedup_key
                and existing.timestamp > cutoff
            ):
                return existing
        return None

    def restore(self, alerts: List[Alert]) -> int:
        """
        Load previously persisted unresolved alerts into the active set.

        Restored alerts do not enter the history, which only tracks alerts
        accepted by this process.

        Args:
            alerts: Alerts loaded from the repository.

        Returns:
            int: Number of alerts restored.
        """
        restored = 0
        for alert in alerts:
            if alert.resolved:
                continue
            self._active[alert.id] = alert
            restored += 1

        logger.info("active_alerts_restored", count=restored)
        return restored

    async def persist(self, alert: Alert) -> bool:
        """
        Write an alert through to the repository.

        Args:
            alert: Alert to upsert.

        Returns:
            bool: True if written, False if there is no repository or the
                write failed or timed out.
        """
        if self.repository is None:
            return False

        try:
            await asyncio.wait_for(
                self.repository.upsert(alert),
                timeout=self.io_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "alert_persist_timeout",
                alert_id=alert.id,
                timeout_seconds=self.io_timeout_seconds,
            )
            return False
        except Exception as e:
            logger.error(
                "alert_persist_failed",
                alert_id=alert.id,
                error=str(e),
            )
            return False

        logger.debug("alert_persisted", alert_id=alert.id, resolved=alert.resolved)
        return True

    async def load_unresolved(self) -> List[Alert]:
        """
        Load unresolved alerts from the repository.

        Returns:
            List[Alert]: Loaded alerts, or [] if there is no repository or
                the read failed.
        """
        if self.repository is None:
            return []

        try:
            return await asyncio.wait_for(
                self.repository.load_unresolved(),
                timeout=self.io_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "active_alerts_load_timeout",
                timeout_seconds=self.io_timeout_seconds,
            )
        except Exception as e:
            logger.error("active_alerts_load_failed", error=str(e))
        return []

    def statistics(self) -> AlertStatistics:
        """
        Aggregate counts over the active set.

        resolved_count counts resolved alerts in the history.

        Returns:
            AlertStatistics: Current statistics.
        """
        active = list(self._active.values())
        by_severity: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for alert in active:
            by_severity[alert.severity.value] = by_severity.get(alert.severity.value, 0) + 1
            by_type[alert.type.value] = by_type.get(alert.type.value, 0) + 1

        return AlertStatistics(
            total=len(active),
            by_severity=by_severity,
            by_type=by_type,
            acknowledged_count=sum(1 for a in active if a.acknowledged),
            resolved_count=sum(1 for a in self._history if a.resolved),
        )

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, alert_id: str) -> bool:
        return alert_id in self._active


def create_alert_storage(
    repository: Optional[AlertRepository] = None,
    io_timeout_seconds: float = 10.0,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> AlertStorage:
    """
    Factory function to create an AlertStorage.

    Args:
        repository: Durable alert store, or None.
        io_timeout_seconds: Upper bound for each repository call.
        history_limit: Maximum number of alerts kept in history.

    Returns:
        AlertStorage: A new storage instance.
    """
    return AlertStorage(
        repository=repository,
        io_timeout_seconds=io_timeout_seconds,
        history_limit=history_limit,
    )

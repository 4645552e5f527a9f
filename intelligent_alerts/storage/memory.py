"""
In-memory implementations of the storage interfaces.

Used for local runs without PostgreSQL and by the test suite.

Example:
    >>> source = InMemoryMetricSource()
    >>> source.add("system_metrics", {"timestamp": now, "response_time": 120, "status_code": 200})
    >>> rows = await source.query("system_metrics", now - timedelta(hours=1), now)
"""

from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional

import structlog

from intelligent_alerts.interfaces.metric_source import CATEGORY_TIME_COLUMNS, MetricSource
from intelligent_alerts.interfaces.repository import AlertRepository, NotificationStore
from intelligent_alerts.models.alerts import Alert

logger = structlog.get_logger(__name__)


def _as_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize a row time value to an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), dates (midnight
    UTC) and ISO-8601 strings. Anything else yields None.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return _as_datetime(parsed)
    return None


def _matches(row_value: Any, expected: Any) -> bool:
    """Equality that treats dates, datetimes and ISO strings alike."""
    if isinstance(expected, (date, datetime)):
        return _as_datetime(row_value) == _as_datetime(expected)
    return row_value == expected


class InMemoryMetricSource(MetricSource):
    """
    MetricSource over lists of dict rows.

    Rows without a parseable time column value are never returned.

    Attributes:
        time_columns: Time column per category.
    """

    def __init__(
        self,
        rows: Optional[Dict[str, Iterable[Dict[str, Any]]]] = None,
        time_columns: Optional[Dict[str, str]] = None,
    ) -> None:
        self.time_columns = dict(time_columns or CATEGORY_TIME_COLUMNS)
        self._rows: Dict[str, List[Dict[str, Any]]] = {
            category: list(items) for category, items in (rows or {}).items()
        }

    def add(self, category: str, row: Dict[str, Any]) -> None:
        """Append a row to a category."""
        self._rows.setdefault(category, []).append(row)

    def extend(self, category: str, rows: Iterable[Dict[str, Any]]) -> None:
        """Append several rows to a category."""
        self._rows.setdefault(category, []).extend(rows)

    def clear(self, category: Optional[str] = None) -> None:
        """Drop the rows of one category, or of every category."""
        if category is None:
            self._rows.clear()
        else:
            self._rows.pop(category, None)

    async def query(
        self,
        category: str,
        start: datetime,
        end: datetime,
        *,
        ascending: bool = True,
        limit: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        time_column = self.time_columns.get(category, "created_at")
        start_at = _as_datetime(start)
        end_at = _as_datetime(end)

        selected = []
        for row in self._rows.get(category, []):
            at = _as_datetime(row.get(time_column))
            if at is None or at < start_at or at > end_at:
                continue
            if filters and not all(_matches(row.get(k), v) for k, v in filters.items()):
                continue
            selected.append((at, row))

        selected.sort(key=lambda item: item[0], reverse=not ascending)
        rows = [dict(row) for _, row in selected]
        if limit is not None:
            rows = rows[:limit]
        return rows


class InMemoryAlertRepository(AlertRepository):
    """AlertRepository backed by a dict of alert copies."""

    def __init__(self) -> None:
        self.alerts: Dict[str, Alert] = {}
        self.upserts = 0

    async def upsert(self, alert: Alert) -> None:
        self.alerts[alert.id] = alert.model_copy(deep=True)
        self.upserts += 1

    async def load_unresolved(self) -> List[Alert]:
        unresolved = [a.model_copy(deep=True) for a in self.alerts.values() if not a.resolved]
        return sorted(unresolved, key=lambda a: a.timestamp)


class InMemoryNotificationStore(NotificationStore):
    """NotificationStore that keeps dashboard rows in a list."""

    def __init__(self) -> None:
        self.notifications: List[Dict[str, Any]] = []

    async def insert_notification(self, alert: Alert) -> None:
        self.notifications.append(
            {
                "alert_id": alert.id,
                "type": alert.type.value,
                "severity": alert.severity.value,
                "title": alert.title,
                "message": alert.message,
                "timestamp": alert.timestamp,
                "acknowledged": alert.acknowledged,
                "metadata": dict(alert.metadata),
            }
        )
        logger.debug("notification_recorded", alert_id=alert.id)

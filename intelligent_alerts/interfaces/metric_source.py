"""
Abstract base class for metric sources.

Collectors never talk to a database directly; they ask a MetricSource for
rows of a named category within a time window. The PostgreSQL client and
the in-memory store both implement this interface.

Categories used by the built-in collectors:
    - marketing_data: date, revenue, impressions, clicks, conversions
    - system_metrics: timestamp, response_time, status_code
    - daily_aggregates: date, total_revenue, total_conversions, total_sessions
    - workflow_executions: status, created_at

Example:
    >>> rows = await source.query(
    ...     "system_metrics",
    ...     start=now - timedelta(hours=1),
    ...     end=now,
    ...     ascending=False,
    ...     limit=100,
    ... )
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

# Time column used for window filtering and ordering, per category
CATEGORY_TIME_COLUMNS: Dict[str, str] = {
    "marketing_data": "date",
    "system_metrics": "timestamp",
    "daily_aggregates": "date",
    "workflow_executions": "created_at",
}


class MetricSource(ABC):
    """
    Read-only access to time-stamped metric rows.

    Rows are plain dicts keyed by column name. Timestamp filtering applies
    to the category's time column (date, timestamp or created_at depending
    on the category).
    """

    @abstractmethod
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
        """
        Fetch rows of a category within [start, end].

        Args:
            category: Row category (table name).
            start: Inclusive window start.
            end: Inclusive window end.
            ascending: Order by time ascending (oldest first) if True.
            limit: Maximum number of rows to return.
            filters: Equality filters on additional columns.

        Returns:
            List[Dict[str, Any]]: Matching rows, possibly empty.
        """
        pass

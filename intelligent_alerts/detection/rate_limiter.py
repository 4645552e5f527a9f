"""
Hourly rate limiter for accepted alerts.

This module provides the HourlyRateLimiter class which caps how many
alerts are accepted per (type, metric) key within a rolling one hour
window.

Key Features:
    - One counter and window start per key
    - Window older than the window length resets the counter
    - Rejected candidates never increment the counter

Example:
    >>> limiter = HourlyRateLimiter(max_per_window=2)
    >>> now = datetime(2025, 1, 26, 12, 0, tzinfo=timezone.utc)
    >>> limiter.allow("performance_error_rate", now)
    True
    >>> limiter.allow("performance_error_rate", now)
    True
    >>> limiter.allow("performance_error_rate", now)
    False
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW = timedelta(hours=1)


@dataclass
class RateWindow:
    """
    Counter state for a single key.

    Attributes:
        count: Alerts accepted in the current window.
        window_start: When the current window began.
    """

    count: int
    window_start: datetime


class HourlyRateLimiter:
    """
    Caps accepted alerts per key per window.

    Callers must serialise access (the pipeline holds the engine lock
    while calling allow()).

    Attributes:
        max_per_window: Maximum accepted alerts per key per window.
        window: Window length.

    Example:
        >>> limiter = HourlyRateLimiter(max_per_window=100)
        >>> limiter.allow("business_revenue", datetime.now(timezone.utc))
        True
        >>> limiter.count("business_revenue")
        1
    """

    def __init__(
        self,
        max_per_window: int,
        window: timedelta = DEFAULT_WINDOW,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            max_per_window: Maximum accepted alerts per key per window.
            window: Window length (default one hour).
        """
        self.max_per_window = max_per_window
        self.window = window
        self._windows: Dict[str, RateWindow] = {}

        logger.debug(
            "rate_limiter_initialized",
            max_per_window=max_per_window,
            window_seconds=window.total_seconds(),
        )

    def allow(self, key: str, now: datetime) -> bool:
        """
        Record an attempt and decide whether it is accepted.

        Args:
            key: Rate limit key (e.g. "performance_error_rate").
            now: Current time.

        Returns:
            bool: True if accepted (counter incremented), False if the key
                already reached max_per_window in the current window.
        """
        state = self._windows.get(key)
        if state is None or now - state.window_start >= self.window:
            state = RateWindow(count=0, window_start=now)
            self._windows[key] = state

        if state.count >= self.max_per_window:
            logger.info(
                "alert_rate_limited",
                key=key,
                count=state.count,
                window_start=state.window_start.isoformat(),
            )
            return False

        state.count += 1
        return True

    def count(self, key: str) -> int:
        """
        Alerts accepted for a key in its current window.

        Args:
            key: Rate limit key.

        Returns:
            int: Current count, 0 if the key was never seen.
        """
        state = self._windows.get(key)
        return state.count if state else 0

    def window_start(self, key: str) -> Optional[datetime]:
        """Start of the current window for a key, if any."""
        state = self._windows.get(key)
        return state.window_start if state else None

    def clear_all(self) -> None:
        """Forget every key."""
        count = len(self._windows)
        self._windows.clear()
        logger.info("rate_limiter_cleared", cleared_count=count)

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, key: str) -> bool:
        return key in self._windows


def create_rate_limiter(max_per_window: int) -> HourlyRateLimiter:
    """
    Factory function to create an HourlyRateLimiter.

    Args:
        max_per_window: Maximum accepted alerts per key per hour.

    Returns:
        HourlyRateLimiter: A new limiter instance.
    """
    return HourlyRateLimiter(max_per_window=max_per_window)

"""
Exception hierarchy for the alerting engine.

Storage clients define their own error families in their modules
(PostgresClientError, RedisClientError); this module holds the errors
raised by the engine itself.
"""

from typing import Optional


class AlertEngineError(Exception):
    """Base exception for alerting engine errors."""

    pass


class ThresholdValidationError(AlertEngineError):
    """Raised when a threshold's bounds are inconsistent."""

    pass


class SchedulerError(AlertEngineError):
    """Raised when the scheduler cannot be started."""

    pass


class ChannelDeliveryError(AlertEngineError):
    """
    Raised by a notification transport when delivery fails.

    Attributes:
        channel: Channel type that failed.
        status: Transport status code, if any.
    """

    def __init__(self, message: str, channel: str, status: Optional[int] = None):
        self.channel = channel
        self.status = status
        super().__init__(message)

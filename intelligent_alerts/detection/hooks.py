"""
Extension hooks for pattern learning and escalation.

The engine calls these hooks at fixed points of the pipeline and the
lifecycle sweep. Both default to no-op implementations.

Hooks:
    PatternLearner: Called with the alert history of the prediction
        horizon after each tick when pattern learning is enabled. May
        return threshold adjustments keyed by metric.
    EscalationPolicy: Called once per unacknowledged alert that outlived
        the escalation timeout.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from intelligent_alerts.models.alerts import Alert, AlertSeverity, ChannelType

if TYPE_CHECKING:
    from intelligent_alerts.detection.dispatcher import ChannelDispatcher

logger = structlog.get_logger(__name__)

_SEVERITY_TIERS = list(AlertSeverity)


class PatternLearner(ABC):
    """Learns from the alert history."""

    @abstractmethod
    async def learn(self, history: List[Alert]) -> Optional[Dict[str, Dict[str, Any]]]:
        """
        Inspect the alert history.

        Args:
            history: Accepted alerts in acceptance order.

        Returns:
            Optional[Dict[str, Dict[str, Any]]]: Threshold field updates
                keyed by metric, applied when auto threshold adjustment
                is on. None or empty for no changes.
        """
        pass


class EscalationPolicy(ABC):
    """Decides what happens to an alert nobody acknowledged in time."""

    @abstractmethod
    async def escalate(self, alert: Alert) -> None:
        """
        Escalate an unacknowledged alert.

        Args:
            alert: Alert that outlived the escalation timeout.
        """
        pass


class NoOpPatternLearner(PatternLearner):
    async def learn(self, history: List[Alert]) -> Optional[Dict[str, Dict[str, Any]]]:
        logger.debug("pattern_learning_skipped", history_size=len(history))
        return None


class NoOpEscalationPolicy(EscalationPolicy):
    async def escalate(self, alert: Alert) -> None:
        logger.debug("escalation_skipped", alert_id=alert.id)


class NextTierEscalationPolicy(EscalationPolicy):
    """
    Notifies the channels of the next severity tier.

    Only channels missing from the alert's notification_channels are
    used, so no channel receives the same alert twice. The channels
    reached are appended to the snapshot. Critical alerts have no higher
    tier; their escalation is logged only.

    Attributes:
        dispatcher: Dispatcher whose registry provides the routing table.
    """

    def __init__(self, dispatcher: "ChannelDispatcher") -> None:
        self.dispatcher = dispatcher

    def escalation_channels(self, alert: Alert) -> List[ChannelType]:
        """
        Channels of the next tier not yet in the alert's snapshot.

        Args:
            alert: Alert being escalated.

        Returns:
            List[ChannelType]: Channel types to notify, possibly empty.
        """
        tier = _SEVERITY_TIERS[min(alert.severity.rank + 1, len(_SEVERITY_TIERS) - 1)]
        return [
            channel_type
            for channel_type in self.dispatcher.registry.channels_for_severity(tier)
            if channel_type not in alert.notification_channels
        ]

    async def escalate(self, alert: Alert) -> None:
        channels = self.escalation_channels(alert)
        logger.warning(
            "alert_escalated",
            alert_id=alert.id,
            severity=alert.severity.value,
            title=alert.title,
            channels=[c.value for c in channels],
        )
        if not channels:
            return

        alert.notification_channels.extend(channels)
        await self.dispatcher.dispatch(alert, channels)

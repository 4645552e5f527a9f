"""
Alert pipeline: one evaluation tick from collectors to notifications.

This module provides the AlertPipeline class which runs every source
collector, filters the candidates through deduplication and rate
limiting, stores and persists the accepted alerts, and dispatches them
to their notification channels.

Key Features:
    - Collectors run concurrently and fail independently
    - Deduplication against the active set on (type, metric, severity)
    - Hourly rate limiting per (type, metric)
    - Write-through persistence, then channel fan-out per accepted alert
      (all at once after the tick when batch_notifications is set)
    - Pattern learning over the prediction horizon, with optional
      threshold adjustments, and escalation after each tick

Example:
    >>> pipeline = AlertPipeline(
    ...     collectors=collectors,
    ...     storage=storage,
    ...     rate_limiter=HourlyRateLimiter(100),
    ...     dispatcher=dispatcher,
    ...     lifecycle=lifecycle,
    ...     config=EngineConfig(),
    ... )
    >>> async with storage.lock:
    ...     result = await pipeline.tick()
    >>> result.accepted_count
    2
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import structlog
from pydantic import ValidationError

from intelligent_alerts.config.models import EngineConfig
from intelligent_alerts.detection.collectors.base import SourceCollector, safe_collect
from intelligent_alerts.detection.dispatcher import ChannelDispatcher
from intelligent_alerts.detection.hooks import NoOpPatternLearner, PatternLearner
from intelligent_alerts.detection.lifecycle import LifecycleManager
from intelligent_alerts.detection.rate_limiter import HourlyRateLimiter
from intelligent_alerts.detection.storage import AlertStorage
from intelligent_alerts.exceptions import ThresholdValidationError
from intelligent_alerts.models.alerts import Alert

logger = structlog.get_logger(__name__)


@dataclass
class TickResult:
    """
    Outcome of one pipeline tick.

    Attributes:
        candidates: Candidate alerts produced by the collectors.
        accepted: Alerts that passed dedup and rate limiting.
        duplicates: Candidates dropped as duplicates.
        rate_limited: Candidates dropped by the rate limiter.
        delivered: Successful channel deliveries across accepted alerts.
    """

    candidates: int = 0
    accepted: List[Alert] = field(default_factory=list)
    duplicates: int = 0
    rate_limited: int = 0
    delivered: int = 0

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)


class AlertPipeline:
    """
    Runs collectors and turns their candidates into accepted alerts.

    The caller holds storage.lock for the duration of tick(), so ticks
    never overlap each other or a lifecycle sweep.

    Attributes:
        collectors: Source collectors run each tick.
        storage: Active set, history and persistence.
        rate_limiter: Hourly limiter per (type, metric).
        dispatcher: Notification fan-out.
        lifecycle: Lifecycle manager used for escalation checks.
        config: Engine configuration.
        pattern_learner: Hook called with the history after each tick.
    """

    def __init__(
        self,
        collectors: Sequence[SourceCollector],
        storage: AlertStorage,
        rate_limiter: HourlyRateLimiter,
        dispatcher: ChannelDispatcher,
        lifecycle: LifecycleManager,
        config: EngineConfig,
        pattern_learner: Optional[PatternLearner] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            collectors: Source collectors run each tick.
            storage: Active set, history and persistence.
            rate_limiter: Hourly limiter per (type, metric).
            dispatcher: Notification fan-out.
            lifecycle: Lifecycle manager used for escalation checks.
            config: Engine configuration.
            pattern_learner: Pattern learning hook; no-op by default.
        """
        self.collectors = list(collectors)
        self.storage = storage
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.lifecycle = lifecycle
        self.config = config
        self.pattern_learner = pattern_learner or NoOpPatternLearner()

        logger.info(
            "alert_pipeline_initialized",
            collectors=[c.name for c in self.collectors],
            dedup=config.auto_acknowledge_duplicates,
            rate_limiting=config.notification_settings.rate_limiting,
            max_alerts_per_hour=config.max_alerts_per_hour,
        )

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        """
        Run one evaluation tick.

        Args:
            now: Tick time (defaults to now, UTC).

        Returns:
            TickResult: Counts and accepted alerts for this tick.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        result = TickResult()

        batches = await asyncio.gather(
            *(safe_collect(collector, now) for collector in self.collectors)
        )
        candidates = [alert for batch in batches for alert in batch]
        result.candidates = len(candidates)

        batch_dispatch = self.config.notification_settings.batch_notifications

        for candidate in candidates:
            if self._is_duplicate(candidate, now):
                result.duplicates += 1
                continue

            if self._is_rate_limited(candidate, now):
                result.rate_limited += 1
                continue

            self.storage.add(candidate)
            await self.storage.persist(candidate)
            if not batch_dispatch:
                result.delivered += await self.dispatcher.dispatch(candidate)
            result.accepted.append(candidate)

            logger.info(
                "alert_accepted",
                alert_id=candidate.id,
                alert_type=candidate.type.value,
                severity=candidate.severity.value,
                metric=candidate.metric,
                title=candidate.title,
            )

        if batch_dispatch and result.accepted:
            delivered = await asyncio.gather(
                *(self.dispatcher.dispatch(alert) for alert in result.accepted)
            )
            result.delivered += sum(delivered)

        ml = self.config.ml_enhancement
        if ml.enabled and ml.pattern_learning:
            await self._learn(now)

        if self.config.notification_settings.escalation_enabled:
            await self.lifecycle.check_escalations(now)

        logger.info(
            "pipeline_tick_complete",
            candidates=result.candidates,
            accepted=result.accepted_count,
            duplicates=result.duplicates,
            rate_limited=result.rate_limited,
            delivered=result.delivered,
            active=len(self.storage),
        )

        return result

    def _is_duplicate(self, candidate: Alert, now: datetime) -> bool:
        if not self.config.auto_acknowledge_duplicates:
            return False

        existing = self.storage.find_duplicate(candidate, now)
        if existing is None:
            return False

        logger.debug(
            "alert_deduplicated",
            candidate_id=candidate.id,
            existing_id=existing.id,
            metric=candidate.metric,
            severity=candidate.severity.value,
        )
        return True

    def _is_rate_limited(self, candidate: Alert, now: datetime) -> bool:
        if not self.config.notification_settings.rate_limiting:
            return False
        return not self.rate_limiter.allow(candidate.rate_limit_key, now)

    async def _learn(self, now: datetime) -> None:
        ml = self.config.ml_enhancement
        since = now - timedelta(hours=ml.prediction_horizon_hours)
        recent = [a for a in self.storage.history() if a.timestamp >= since]

        try:
            proposals = await self.pattern_learner.learn(recent)
        except Exception as e:
            logger.error("pattern_learning_failed", error=str(e))
            return

        if not proposals:
            return
        if not ml.auto_threshold_adjustment:
            logger.info("threshold_adjustments_ignored", metrics=sorted(proposals))
            return

        for metric, partial in proposals.items():
            try:
                self.lifecycle.update_threshold(metric, partial)
            except (ThresholdValidationError, ValidationError) as e:
                logger.warning("threshold_adjustment_rejected", metric=metric, error=str(e))

"""
Intelligent alert engine facade.

This module wires the detection components together and exposes the
public operational API used by the service runner and the HTTP app.

Example:
    >>> config = load_config("config")
    >>> engine = create_engine(
    ...     config,
    ...     source=postgres,
    ...     repository=postgres,
    ...     notification_store=postgres,
    ...     redis=redis,
    ... )
    >>> await engine.start()
    >>> engine.get_statistics().total
    0
    >>> await engine.stop()
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import structlog

from intelligent_alerts.config.models import AppConfig, EngineConfig
from intelligent_alerts.detection.anomaly import create_anomaly_detector
from intelligent_alerts.detection.collectors import (
    BusinessCollector,
    PerformanceCollector,
    RealtimeCollector,
    SourceCollector,
    WorkflowCollector,
)
from intelligent_alerts.detection.dispatcher import (
    ChannelDispatcher,
    ChannelRegistry,
    create_dispatcher,
)
from intelligent_alerts.detection.hooks import EscalationPolicy, PatternLearner
from intelligent_alerts.detection.lifecycle import LifecycleManager, create_lifecycle_manager
from intelligent_alerts.detection.pipeline import AlertPipeline, TickResult
from intelligent_alerts.detection.rate_limiter import create_rate_limiter
from intelligent_alerts.detection.scheduler import Scheduler
from intelligent_alerts.detection.storage import AlertStorage, create_alert_storage
from intelligent_alerts.detection.thresholds import ThresholdRegistry, create_threshold_registry
from intelligent_alerts.interfaces.metric_source import MetricSource
from intelligent_alerts.interfaces.repository import AlertRepository, NotificationStore
from intelligent_alerts.interfaces.transport import NotificationTransport
from intelligent_alerts.models.alerts import (
    Alert,
    AlertStatistics,
    ChannelType,
    NotificationChannel,
)
from intelligent_alerts.storage.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class IntelligentAlertEngine:
    """
    Public operational API of the alerting engine.

    Owns the active set (through AlertStorage) and serialises every
    mutation of it with the storage lock.

    Attributes:
        config: Engine configuration.
        thresholds: Threshold registry.
        storage: Active set, history and persistence.
        dispatcher: Notification fan-out.
        lifecycle: Lifecycle manager.
        pipeline: Evaluation pipeline.
        scheduler: Periodic tick and sweep.
    """

    def __init__(
        self,
        config: EngineConfig,
        thresholds: ThresholdRegistry,
        storage: AlertStorage,
        dispatcher: ChannelDispatcher,
        lifecycle: LifecycleManager,
        pipeline: AlertPipeline,
    ) -> None:
        self.config = config
        self.thresholds = thresholds
        self.storage = storage
        self.dispatcher = dispatcher
        self.lifecycle = lifecycle
        self.pipeline = pipeline
        self.scheduler = Scheduler(
            tick=self._scheduled_tick,
            sweep=self._scheduled_sweep,
            lock=storage.lock,
            update_interval=config.update_interval,
            cleanup_interval=config.cleanup_interval,
        )
        self._restored = False

    @property
    def is_running(self) -> bool:
        """True while the scheduler is running."""
        return self.scheduler.is_running

    async def start(self) -> None:
        """
        Restore unresolved alerts and start periodic processing.

        Does nothing when the engine is disabled or already running.

        Raises:
            SchedulerError: If the scheduler cannot be started.
        """
        if not self.config.enabled:
            logger.info("alert_engine_disabled")
            return
        if self.is_running:
            return

        if not self._restored:
            loaded = await self.storage.load_unresolved()
            async with self.storage.lock:
                self.storage.restore(loaded)
            self._restored = True

        await self.scheduler.start()
        logger.info(
            "alert_engine_started",
            active_alerts=len(self.storage),
            collectors=[c.name for c in self.pipeline.collectors],
        )

    async def stop(self) -> None:
        """Stop periodic processing, waiting for an in-flight tick."""
        await self.scheduler.stop()
        logger.info("alert_engine_stopped", active_alerts=len(self.storage))

    async def close(self) -> None:
        """Stop the engine and release transport resources."""
        await self.stop()
        await self.dispatcher.close()

    async def run_once(self, now: Optional[datetime] = None) -> TickResult:
        """
        Run a single pipeline tick.

        Args:
            now: Tick time (defaults to now).

        Returns:
            TickResult: Outcome of the tick.
        """
        async with self.storage.lock:
            return await self.pipeline.tick(now)

    async def run_sweep(self, now: Optional[datetime] = None) -> int:
        """
        Run a single lifecycle sweep: auto-resolution then cleanup.

        Args:
            now: Sweep time (defaults to now).

        Returns:
            int: Number of resolved entries purged from the active set.
        """
        async with self.storage.lock:
            return await self._sweep(now)

    def get_active_alerts(self) -> List[Alert]:
        """Unresolved alerts in the active set, oldest first."""
        return [a for a in self.storage.active_alerts() if not a.resolved]

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        """Get an active alert by id."""
        return self.storage.get(alert_id)

    async def acknowledge(self, alert_id: str) -> bool:
        """
        Acknowledge an active alert.

        Returns:
            bool: False if the id is not in the active set.
        """
        async with self.storage.lock:
            return await self.lifecycle.acknowledge(alert_id)

    async def resolve(self, alert_id: str) -> bool:
        """
        Resolve an active alert.

        Returns:
            bool: False if the id is not in the active set.
        """
        async with self.storage.lock:
            return await self.lifecycle.resolve(alert_id)

    def update_threshold(self, metric: str, partial: Dict[str, Any]) -> bool:
        """
        Merge new values into an existing threshold.

        Returns:
            bool: False for an unknown metric.

        Raises:
            ThresholdValidationError: If the merged bounds are inconsistent.
            pydantic.ValidationError: If a value has the wrong type.
        """
        return self.lifecycle.update_threshold(metric, partial)

    def reconfigure_channel(
        self,
        channel: NotificationChannel,
        transport: Optional[NotificationTransport] = None,
    ) -> None:
        """Swap a notification channel's configuration at runtime."""
        self.dispatcher.reconfigure(channel, transport)

    def get_statistics(self) -> AlertStatistics:
        """Counts over the active set and resolved history."""
        return self.storage.statistics()

    async def _scheduled_tick(self) -> TickResult:
        return await self.pipeline.tick()

    async def _scheduled_sweep(self) -> int:
        return await self._sweep(None)

    async def _sweep(self, now: Optional[datetime]) -> int:
        await self.lifecycle.auto_resolve_expired(now)
        return self.lifecycle.cleanup()


def build_collectors(
    config: EngineConfig,
    source: MetricSource,
    thresholds: ThresholdRegistry,
    registry: ChannelRegistry,
) -> List[SourceCollector]:
    """
    Create the four built-in collectors.

    Args:
        config: Engine configuration.
        source: Metric source shared by every collector.
        thresholds: Threshold registry.
        registry: Channel registry providing the severity routing.

    Returns:
        List[SourceCollector]: Realtime, performance, business and workflow.
    """
    common: Dict[str, Any] = {
        "source": source,
        "thresholds": thresholds,
        "router": registry.channels_for_severity,
        "io_timeout_seconds": config.io_timeout_seconds,
    }
    return [
        RealtimeCollector(
            detection=config.anomaly_detection,
            detector=create_anomaly_detector(),
            **common,
        ),
        PerformanceCollector(**common),
        BusinessCollector(**common),
        WorkflowCollector(**common),
    ]


def create_engine(
    config: AppConfig,
    source: MetricSource,
    repository: Optional[AlertRepository] = None,
    notification_store: Optional[NotificationStore] = None,
    redis: Optional[RedisClient] = None,
    transports: Optional[Dict[ChannelType, NotificationTransport]] = None,
    collectors: Optional[Sequence[SourceCollector]] = None,
    pattern_learner: Optional[PatternLearner] = None,
    escalation_policy: Optional[EscalationPolicy] = None,
) -> IntelligentAlertEngine:
    """
    Factory function to create a fully wired IntelligentAlertEngine.

    Args:
        config: Application configuration.
        source: Metric source for the collectors.
        repository: Durable alert store; None keeps alerts in memory only.
        notification_store: Dashboard notification sink; required unless
            explicit transports are given.
        redis: Optional Redis client for live dashboard events.
        transports: Explicit transports; built from config when None.
        collectors: Explicit collectors; the built-in four when None.
        pattern_learner: Pattern learning hook.
        escalation_policy: Escalation hook.

    Returns:
        IntelligentAlertEngine: Engine ready to start.

    Raises:
        ValueError: If neither transports nor a notification store is given.
    """
    engine_config = config.engine
    timeout = engine_config.io_timeout_seconds

    thresholds = create_threshold_registry(config.thresholds)
    storage = create_alert_storage(
        repository=repository,
        io_timeout_seconds=timeout,
        history_limit=engine_config.history_limit,
    )

    if transports is not None:
        dispatcher = ChannelDispatcher(
            ChannelRegistry.from_config(config.channels), transports, timeout_seconds=timeout
        )
    elif notification_store is not None:
        dispatcher = create_dispatcher(config.channels, notification_store, redis, timeout)
    else:
        raise ValueError("notification_store is required when transports are not given")
    registry = dispatcher.registry

    lifecycle = create_lifecycle_manager(
        storage=storage,
        thresholds=thresholds,
        settings=engine_config.notification_settings,
        escalation_policy=escalation_policy,
        redis=redis,
    )

    if collectors is None:
        collectors = build_collectors(engine_config, source, thresholds, registry)

    pipeline = AlertPipeline(
        collectors=collectors,
        storage=storage,
        rate_limiter=create_rate_limiter(engine_config.max_alerts_per_hour),
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        config=engine_config,
        pattern_learner=pattern_learner,
    )

    return IntelligentAlertEngine(
        config=engine_config,
        thresholds=thresholds,
        storage=storage,
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        pipeline=pipeline,
    )

"""
Alert detection, routing and lifecycle.

Components:
    thresholds: ThresholdRegistry for per-metric bounds
    anomaly: AnomalyDetector for statistical deviation checks
    collectors/: Source collectors (realtime, performance, business, workflow)
    rate_limiter: HourlyRateLimiter for per-metric alert caps
    storage: AlertStorage for the active set, history and persistence
    pipeline: AlertPipeline for one evaluation tick
    dispatcher: ChannelRegistry and ChannelDispatcher for notification routing
    channels/: Notification transports (dashboard, email, slack, telegram, webhook)
    lifecycle: LifecycleManager for acknowledge, resolve, cleanup and escalation
    hooks: Pattern learning and escalation extension points
    scheduler: Scheduler for the periodic tick and sweep

Example:
    >>> from intelligent_alerts.detection import (
    ...     AlertPipeline,
    ...     AlertStorage,
    ...     LifecycleManager,
    ...     ThresholdRegistry,
    ... )
    >>>
    >>> thresholds = ThresholdRegistry()
    >>> storage = AlertStorage(repository)
    >>> lifecycle = LifecycleManager(storage, thresholds)
"""

from intelligent_alerts.detection.anomaly import (
    AnomalyDetector,
    create_anomaly_detector,
    suggested_actions_for,
)
from intelligent_alerts.detection.collectors import (
    BusinessCollector,
    PerformanceCollector,
    RealtimeCollector,
    SourceCollector,
    WorkflowCollector,
    safe_collect,
)
from intelligent_alerts.detection.dispatcher import (
    ChannelDispatcher,
    ChannelRegistry,
    build_transports,
    channels_for_severity,
    create_dispatcher,
)
from intelligent_alerts.detection.hooks import (
    EscalationPolicy,
    NoOpEscalationPolicy,
    NoOpPatternLearner,
    PatternLearner,
    NextTierEscalationPolicy,
)
from intelligent_alerts.detection.lifecycle import (
    LifecycleManager,
    create_lifecycle_manager,
)
from intelligent_alerts.detection.pipeline import AlertPipeline, TickResult
from intelligent_alerts.detection.rate_limiter import (
    HourlyRateLimiter,
    create_rate_limiter,
)
from intelligent_alerts.detection.scheduler import Scheduler
from intelligent_alerts.detection.storage import AlertStorage, create_alert_storage
from intelligent_alerts.detection.thresholds import (
    ThresholdRegistry,
    create_threshold_registry,
)

__all__ = [
    # Thresholds
    "ThresholdRegistry",
    "create_threshold_registry",
    # Anomaly
    "AnomalyDetector",
    "create_anomaly_detector",
    "suggested_actions_for",
    # Collectors
    "SourceCollector",
    "safe_collect",
    "RealtimeCollector",
    "PerformanceCollector",
    "BusinessCollector",
    "WorkflowCollector",
    # Pipeline
    "AlertPipeline",
    "TickResult",
    "HourlyRateLimiter",
    "create_rate_limiter",
    "AlertStorage",
    "create_alert_storage",
    # Dispatcher
    "ChannelRegistry",
    "ChannelDispatcher",
    "build_transports",
    "channels_for_severity",
    "create_dispatcher",
    # Lifecycle
    "LifecycleManager",
    "create_lifecycle_manager",
    # Hooks
    "PatternLearner",
    "EscalationPolicy",
    "NoOpPatternLearner",
    "NoOpEscalationPolicy",
    "NextTierEscalationPolicy",
    # Scheduler
    "Scheduler",
]

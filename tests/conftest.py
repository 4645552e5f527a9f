"""
Shared pytest fixtures for the alerting engine tests.

Provides in-memory storage, a recording notification transport, alert
and configuration factories, and a fully wired engine that never touches
PostgreSQL, Redis or the network.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import pytest

from intelligent_alerts.config.models import (
    AppConfig,
    ChannelsConfig,
    EngineConfig,
    NotificationSettings,
)
from intelligent_alerts.detection.thresholds import ThresholdRegistry
from intelligent_alerts.engine import IntelligentAlertEngine, create_engine
from intelligent_alerts.models.alerts import (
    Alert,
    AlertSeverity,
    AlertType,
    ChannelType,
)
from intelligent_alerts.storage.memory import (
    InMemoryAlertRepository,
    InMemoryMetricSource,
    InMemoryNotificationStore,
)
from tests.factories import RecordingTransport

NOW = datetime(2025, 1, 26, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed tick time used across tests."""
    return NOW


@pytest.fixture
def make_alert() -> Callable[..., Alert]:
    """Factory for alerts with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> Alert:
        counter["n"] += 1
        data: Dict[str, Any] = {
            "id": f"performance_error_rate_{counter['n']}",
            "type": AlertType.PERFORMANCE,
            "severity": AlertSeverity.HIGH,
            "title": "High error rate detected",
            "message": "Error rate is 7.0%",
            "source": "performance_monitor",
            "metric": "error_rate",
            "current_value": 7.0,
            "threshold": 5.0,
            "confidence": 0.95,
            "timestamp": NOW,
            "notification_channels": [ChannelType.DASHBOARD],
        }
        data.update(overrides)
        return Alert(**data)

    return _make


@pytest.fixture
def thresholds() -> ThresholdRegistry:
    """Registry with the built-in thresholds."""
    return ThresholdRegistry()


@pytest.fixture
def source() -> InMemoryMetricSource:
    return InMemoryMetricSource()


@pytest.fixture
def repository() -> InMemoryAlertRepository:
    return InMemoryAlertRepository()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def dashboard_transport() -> RecordingTransport:
    return RecordingTransport(ChannelType.DASHBOARD)


@pytest.fixture
def engine_config() -> EngineConfig:
    """Engine settings with a 15 minute escalation timeout."""
    return EngineConfig(
        update_interval=30,
        cleanup_interval=3600,
        max_alerts_per_hour=100,
        notification_settings=NotificationSettings(
            rate_limiting=True,
            escalation_enabled=True,
            escalation_timeout_minutes=15,
        ),
    )


@pytest.fixture
def app_config(engine_config: EngineConfig) -> AppConfig:
    """Application config with only the dashboard channel enabled."""
    return AppConfig(engine=engine_config, channels=ChannelsConfig())


@pytest.fixture
def build_engine(
    app_config: AppConfig,
    source: InMemoryMetricSource,
    repository: InMemoryAlertRepository,
    dashboard_transport: RecordingTransport,
) -> Callable[..., IntelligentAlertEngine]:
    """Factory for engines wired to in-memory storage."""

    def _build(
        config: Optional[AppConfig] = None,
        **kwargs: Any,
    ) -> IntelligentAlertEngine:
        kwargs.setdefault("repository", repository)
        kwargs.setdefault("transports", {ChannelType.DASHBOARD: dashboard_transport})
        return create_engine(config or app_config, source=source, **kwargs)

    return _build


@pytest.fixture
def engine(build_engine: Callable[..., IntelligentAlertEngine]) -> IntelligentAlertEngine:
    return build_engine()

"""
Tests for the alert pipeline: dedup, rate limiting, persistence and
dispatch of accepted alerts, and collector failure isolation.
"""

from datetime import timedelta
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest

from intelligent_alerts.config.models import EngineConfig, MLEnhancementConfig, NotificationSettings
from intelligent_alerts.detection.collectors.base import SourceCollector
from intelligent_alerts.detection.dispatcher import ChannelDispatcher, ChannelRegistry
from intelligent_alerts.detection.hooks import PatternLearner
from intelligent_alerts.detection.lifecycle import LifecycleManager
from intelligent_alerts.detection.pipeline import AlertPipeline
from intelligent_alerts.detection.rate_limiter import HourlyRateLimiter
from intelligent_alerts.detection.storage import AlertStorage
from intelligent_alerts.models.alerts import Alert, AlertSeverity, ChannelType
from tests.factories import RecordingTransport


class StaticCollector(SourceCollector):
    """Collector returning pre-built alerts, or raising."""

    name = "static_monitor"
    category = "static"

    def __init__(self, alerts_factory, error: Optional[Exception] = None):
        self.alerts_factory = alerts_factory
        self.error = error
        self.io_timeout_seconds = 1.0

    async def collect(self, now) -> List[Alert]:
        if self.error is not None:
            raise self.error
        return self.alerts_factory(now)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport(ChannelType.DASHBOARD)


@pytest.fixture
def storage(repository) -> AlertStorage:
    return AlertStorage(repository=repository)


def build_pipeline(
    collectors,
    storage,
    transport,
    thresholds,
    config: Optional[EngineConfig] = None,
    pattern_learner=None,
) -> AlertPipeline:
    config = config or EngineConfig(ml_enhancement=MLEnhancementConfig(enabled=False))
    dispatcher = ChannelDispatcher(
        ChannelRegistry(),
        {ChannelType.DASHBOARD: transport},
        timeout_seconds=1.0,
    )
    lifecycle = LifecycleManager(storage, thresholds, config.notification_settings)
    return AlertPipeline(
        collectors=collectors,
        storage=storage,
        rate_limiter=HourlyRateLimiter(config.max_alerts_per_hour),
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        config=config,
        pattern_learner=pattern_learner,
    )


class TestAlertPipeline:
    """Test cases for AlertPipeline.tick."""

    @pytest.mark.asyncio
    async def test_accepted_alert_is_stored_persisted_and_dispatched(
        self, make_alert, storage, repository, transport, thresholds, now
    ):
        collector = StaticCollector(lambda _: [make_alert()])
        pipeline = build_pipeline([collector], storage, transport, thresholds)

        result = await pipeline.tick(now)

        assert result.candidates == 1
        assert result.accepted_count == 1
        assert result.delivered == 1
        alert = result.accepted[0]
        assert storage.get(alert.id) is alert
        assert alert.id in repository.alerts
        assert transport.sent == [alert]
        assert storage.history() == [alert]

    @pytest.mark.asyncio
    async def test_duplicate_within_hour_is_dropped(
        self, make_alert, storage, transport, thresholds, now
    ):
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds)

        await pipeline.tick(now)
        result = await pipeline.tick(now + timedelta(seconds=30))

        assert result.duplicates == 1
        assert result.accepted_count == 0
        assert len(storage) == 1
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_different_severity_is_not_a_duplicate(
        self, make_alert, storage, transport, thresholds, now
    ):
        severities = iter([AlertSeverity.HIGH, AlertSeverity.CRITICAL])
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts, severity=next(severities))])
        pipeline = build_pipeline([collector], storage, transport, thresholds)

        await pipeline.tick(now)
        result = await pipeline.tick(now + timedelta(seconds=30))

        assert result.accepted_count == 1
        assert len(storage) == 2

    @pytest.mark.asyncio
    async def test_duplicate_after_window_is_accepted(
        self, make_alert, storage, transport, thresholds, now
    ):
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts, auto_resolve=False)])
        pipeline = build_pipeline([collector], storage, transport, thresholds)

        await pipeline.tick(now)
        result = await pipeline.tick(now + timedelta(hours=1, seconds=1))

        assert result.accepted_count == 1
        assert len(storage) == 2

    @pytest.mark.asyncio
    async def test_dedup_can_be_disabled(self, make_alert, storage, transport, thresholds, now):
        config = EngineConfig(
            auto_acknowledge_duplicates=False,
            ml_enhancement=MLEnhancementConfig(enabled=False),
        )
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config)

        await pipeline.tick(now)
        result = await pipeline.tick(now + timedelta(seconds=30))

        assert result.accepted_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_per_type_and_metric(
        self, make_alert, storage, transport, thresholds, now
    ):
        config = EngineConfig(
            max_alerts_per_hour=2,
            auto_acknowledge_duplicates=False,
            ml_enhancement=MLEnhancementConfig(enabled=False),
        )
        collector = StaticCollector(
            lambda ts: [
                make_alert(timestamp=ts),
                make_alert(timestamp=ts, severity=AlertSeverity.CRITICAL),
                make_alert(timestamp=ts, severity=AlertSeverity.MEDIUM),
                make_alert(timestamp=ts, metric="response_time"),
            ]
        )
        pipeline = build_pipeline([collector], storage, transport, thresholds, config)

        result = await pipeline.tick(now)

        assert result.accepted_count == 3
        assert result.rate_limited == 1
        assert [a.metric for a in result.accepted] == ["error_rate", "error_rate", "response_time"]

    @pytest.mark.asyncio
    async def test_rate_limiting_can_be_disabled(
        self, make_alert, storage, transport, thresholds, now
    ):
        config = EngineConfig(
            max_alerts_per_hour=0,
            ml_enhancement=MLEnhancementConfig(enabled=False),
            notification_settings=NotificationSettings(rate_limiting=False),
        )
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config)

        result = await pipeline.tick(now)

        assert result.accepted_count == 1

    @pytest.mark.asyncio
    async def test_failing_collector_does_not_block_others(
        self, make_alert, storage, transport, thresholds, now
    ):
        broken = StaticCollector(None, error=RuntimeError("boom"))
        healthy = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([broken, healthy], storage, transport, thresholds)

        result = await pipeline.tick(now)

        assert result.candidates == 1
        assert result.accepted_count == 1

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_alert_active(
        self, make_alert, transport, thresholds, now
    ):
        repository = AsyncMock()
        repository.upsert.side_effect = ConnectionError("database is down")
        storage = AlertStorage(repository=repository)
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds)

        result = await pipeline.tick(now)

        assert result.accepted_count == 1
        assert len(storage) == 1
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_pattern_learner_receives_history(
        self, make_alert, storage, transport, thresholds, now
    ):
        learner = AsyncMock(spec=PatternLearner)
        learner.learn.return_value = None
        config = EngineConfig(ml_enhancement=MLEnhancementConfig(enabled=True))
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        result = await pipeline.tick(now)

        learner.learn.assert_awaited_once_with(result.accepted)

    @pytest.mark.asyncio
    async def test_pattern_learner_failure_is_contained(
        self, make_alert, storage, transport, thresholds, now
    ):
        learner = AsyncMock(spec=PatternLearner)
        learner.learn.side_effect = ValueError("model unavailable")
        config = EngineConfig(ml_enhancement=MLEnhancementConfig(enabled=True))
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        result = await pipeline.tick(now)

        assert result.accepted_count == 1

    @pytest.mark.asyncio
    async def test_pattern_learning_off_skips_learner(
        self, make_alert, storage, transport, thresholds, now
    ):
        learner = AsyncMock(spec=PatternLearner)
        config = EngineConfig(
            ml_enhancement=MLEnhancementConfig(enabled=True, pattern_learning=False)
        )
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        await pipeline.tick(now)

        learner.learn.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_learner_sees_only_the_prediction_horizon(
        self, make_alert, storage, transport, thresholds, now
    ):
        old = make_alert(metric="response_time", timestamp=now - timedelta(hours=7))
        storage.add(old)
        learner = AsyncMock(spec=PatternLearner)
        learner.learn.return_value = None
        config = EngineConfig(
            ml_enhancement=MLEnhancementConfig(enabled=True, prediction_horizon_hours=6)
        )
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        result = await pipeline.tick(now)

        assert old in storage.history()
        learner.learn.assert_awaited_once_with(result.accepted)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("auto_adjust,expected", [(True, 2500), (False, 2000)])
    async def test_learner_threshold_proposals(
        self, make_alert, storage, transport, thresholds, now, auto_adjust, expected
    ):
        learner = AsyncMock(spec=PatternLearner)
        learner.learn.return_value = {"response_time": {"warning_max": 2500}}
        config = EngineConfig(
            ml_enhancement=MLEnhancementConfig(
                enabled=True, auto_threshold_adjustment=auto_adjust
            )
        )
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        await pipeline.tick(now)

        assert thresholds.get("response_time").warning_max == expected

    @pytest.mark.asyncio
    async def test_invalid_threshold_proposal_is_rejected(
        self, make_alert, storage, transport, thresholds, now
    ):
        learner = AsyncMock(spec=PatternLearner)
        learner.learn.return_value = {
            "error_rate": {"warning_max": 20},
            "response_time": {"warning_max": 2500},
        }
        config = EngineConfig(ml_enhancement=MLEnhancementConfig(enabled=True))
        collector = StaticCollector(lambda ts: [make_alert(timestamp=ts)])
        pipeline = build_pipeline([collector], storage, transport, thresholds, config, learner)

        result = await pipeline.tick(now)

        assert result.accepted_count == 1
        assert thresholds.get("error_rate").warning_max == 5
        assert thresholds.get("response_time").warning_max == 2500


class PersistedCountTransport(RecordingTransport):
    """Records how many alerts the repository held at each send."""

    def __init__(self, repository):
        super().__init__(ChannelType.DASHBOARD)
        self.repository = repository
        self.persisted_at_send: List[int] = []

    async def send(self, alert: Alert) -> bool:
        self.persisted_at_send.append(len(self.repository.alerts))
        return await super().send(alert)


class TestNotificationBatching:
    """Test cases for batch_notifications in AlertPipeline.tick."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch,expected", [(True, [2, 2]), (False, [1, 2])])
    async def test_dispatch_timing(
        self, make_alert, storage, repository, thresholds, now, batch, expected
    ):
        transport = PersistedCountTransport(repository)
        config = EngineConfig(
            ml_enhancement=MLEnhancementConfig(enabled=False),
            notification_settings=NotificationSettings(batch_notifications=batch),
        )
        collector = StaticCollector(
            lambda ts: [
                make_alert(timestamp=ts),
                make_alert(metric="response_time", timestamp=ts),
            ]
        )
        pipeline = build_pipeline([collector], storage, transport, thresholds, config)

        result = await pipeline.tick(now)

        assert result.accepted_count == 2
        assert result.delivered == 2
        assert transport.persisted_at_send == expected
        assert transport.sent == result.accepted

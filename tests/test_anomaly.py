"""
Tests for the statistical anomaly detector.
"""

import pytest
from pydantic import ValidationError

from intelligent_alerts.config.models import AnomalyDetectionConfig
from intelligent_alerts.detection.anomaly import (
    MAX_CONFIDENCE,
    AnomalyDetector,
    format_value,
    suggested_actions_for,
)
from intelligent_alerts.models.alerts import AlertSeverity


@pytest.fixture
def detector() -> AnomalyDetector:
    return AnomalyDetector()


@pytest.fixture
def config() -> AnomalyDetectionConfig:
    return AnomalyDetectionConfig(sensitivity=7, min_data_points=10)


class TestAnomalyDetector:
    """Test cases for AnomalyDetector.detect."""

    def test_revenue_spike_is_critical(self, detector, config):
        """Alternating 950/1050 history with a 5000 sample is critical."""
        samples = [950, 1050] * 5 + [5000]

        verdict = detector.detect("revenue", samples, config)

        assert verdict is not None
        assert verdict.severity == AlertSeverity.CRITICAL
        assert verdict.confidence == pytest.approx(0.95)
        assert verdict.expected_value == pytest.approx(1000.0)
        assert verdict.std_dev == pytest.approx(50.0)
        assert verdict.z_score == pytest.approx(80.0)
        assert verdict.current_value == 5000
        assert verdict.sample_size == 11
        assert verdict.message == "revenue value 5000 deviates 80.00 standard deviations from normal"
        assert verdict.suggested_actions == suggested_actions_for("revenue")

    @pytest.mark.parametrize("direction", [1, -1])
    def test_larger_deviation_never_lowers_z_or_severity(self, detector, config, direction):
        history = [950, 1050] * 5
        previous_z, previous_rank, previous_confidence = 0.0, -1, 0.0

        for deviation in range(0, 1000, 10):
            verdict = detector.detect("revenue", history + [1000 + direction * deviation], config)
            if verdict is None:
                z, rank, confidence = 0.0, -1, 0.0
            else:
                z, rank, confidence = verdict.z_score, verdict.severity.rank, verdict.confidence

            assert z >= previous_z
            assert rank >= previous_rank
            assert confidence >= previous_confidence
            previous_z, previous_rank, previous_confidence = z, rank, confidence

        assert previous_rank == AlertSeverity.CRITICAL.rank

    def test_value_within_band_is_not_anomalous(self, detector, config):
        samples = [950, 1050] * 5 + [1100]

        assert detector.detect("revenue", samples, config) is None

    def test_too_few_samples(self, detector, config):
        samples = [950, 1050] * 4 + [5000]

        assert detector.detect("revenue", samples, config) is None

    def test_zero_variance_history_never_alerts(self, detector, config):
        """A flat history has no spread, so even huge jumps are ignored."""
        samples = [100] * 10 + [10_000]

        assert detector.detect("clicks", samples, config) is None

    def test_severity_bands(self, detector):
        """z in (t, 1.5t] is medium, (1.5t, 2t] is high, above 2t critical."""
        config = AnomalyDetectionConfig(sensitivity=4, min_data_points=3)
        # history [90, 110] -> mean 100, std 10; threshold t = 2
        history = [90, 110] * 3

        medium = detector.detect("m", history + [125], config)
        high = detector.detect("m", history + [135], config)
        critical = detector.detect("m", history + [145], config)

        assert medium.severity == AlertSeverity.MEDIUM
        assert high.severity == AlertSeverity.HIGH
        assert critical.severity == AlertSeverity.CRITICAL

    def test_exact_threshold_is_not_anomalous(self, detector):
        config = AnomalyDetectionConfig(sensitivity=4, min_data_points=3)

        assert detector.detect("m", [90, 110] * 3 + [120], config) is None

    def test_drop_is_detected(self, detector, config):
        """Deviation is symmetric: a collapse counts as much as a spike."""
        samples = [950, 1050] * 5 + [100]

        verdict = detector.detect("revenue", samples, config)

        assert verdict is not None
        assert verdict.severity == AlertSeverity.CRITICAL

    def test_confidence_is_bounded(self, detector):
        config = AnomalyDetectionConfig(sensitivity=4, min_data_points=3)

        verdict = detector.detect("m", [90, 110] * 3 + [125], config)

        # z = 2.5, t = 2 -> 0.625
        assert verdict.confidence == pytest.approx(0.625)
        assert verdict.confidence <= MAX_CONFIDENCE

    def test_higher_sensitivity_is_less_sensitive(self, detector):
        """Sensitivity maps to a z threshold of sensitivity / 2."""
        samples = [90, 110] * 5 + [140]  # z = 4

        loose = AnomalyDetectionConfig(sensitivity=10, min_data_points=3)
        strict = AnomalyDetectionConfig(sensitivity=6, min_data_points=3)

        assert detector.detect("m", samples, loose) is None
        assert detector.detect("m", samples, strict) is not None


class TestAnomalyDetectionConfig:
    """Test cases for AnomalyDetectionConfig validation."""

    def test_z_threshold(self):
        assert AnomalyDetectionConfig(sensitivity=7).z_threshold == 3.5

    @pytest.mark.parametrize("sensitivity", [0, 11])
    def test_sensitivity_out_of_range(self, sensitivity):
        with pytest.raises(ValidationError):
            AnomalyDetectionConfig(sensitivity=sensitivity)


def test_format_value():
    assert format_value(5000.0) == "5000"
    assert format_value(12.5) == "12.5"

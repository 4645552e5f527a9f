"""
Statistical anomaly detection for metric series.

This module provides the AnomalyDetector class which decides whether the
latest sample of a metric series deviates from the preceding samples.

Key Features:
    - Population z-score of the latest sample against the history
    - Sensitivity (1-10) mapped to a z-score threshold of sensitivity / 2
    - Severity bands: > 2t critical, > 1.5t high, otherwise medium
    - Zero-variance guard (a flat history never yields an anomaly)

Example:
    >>> detector = AnomalyDetector()
    >>> config = AnomalyDetectionConfig(sensitivity=7)
    >>> verdict = detector.detect("revenue", [950, 1050] * 5 + [5000], config)
    >>> verdict.severity
    <AlertSeverity.CRITICAL: 'critical'>
"""

import math
from typing import List, Optional, Sequence

import structlog

from intelligent_alerts.config.models import AnomalyDetectionConfig
from intelligent_alerts.models.alerts import AlertSeverity, AnomalyVerdict

logger = structlog.get_logger(__name__)

MAX_CONFIDENCE = 0.95


def suggested_actions_for(metric: str) -> List[str]:
    """Default remediation hints attached to anomaly verdicts."""
    return [
        f"Investigate {metric} patterns",
        "Check for external factors",
        "Review recent changes",
        "Monitor trend continuation",
    ]


class AnomalyDetector:
    """
    Stateless z-score anomaly detector.

    The last sample is the current value; every preceding sample forms
    the history. Mean and population standard deviation are computed over
    the history only.

    Note:
        confidence = min(0.95, (z / t) * 0.5) is a bounded heuristic, not
        a probability. It is kept for compatibility with existing
        dashboards that display it.
    """

    def detect(
        self,
        metric: str,
        samples: Sequence[float],
        config: AnomalyDetectionConfig,
    ) -> Optional[AnomalyVerdict]:
        """
        Check whether the latest sample is anomalous.

        Args:
            metric: Metric name, used in the message and actions.
            samples: Ordered samples, oldest first. The last one is current.
            config: Detection settings (sensitivity, min_data_points).

        Returns:
            Optional[AnomalyVerdict]: Verdict when the z-score exceeds the
                threshold, None otherwise (too few samples, zero variance,
                or within the normal band).
        """
        if len(samples) < config.min_data_points or len(samples) < 2:
            return None

        current = float(samples[-1])
        history = [float(v) for v in samples[:-1]]

        mean = self._calculate_mean(history)
        std = self._calculate_std(history, mean)

        # Flat history: any deviation would be infinite, treat as no signal
        if std == 0:
            logger.debug("anomaly_check_skipped", metric=metric, reason="zero_variance")
            return None

        z_score = abs(current - mean) / std
        threshold = config.z_threshold

        if z_score <= threshold:
            return None

        if z_score > threshold * 2:
            severity = AlertSeverity.CRITICAL
        elif z_score > threshold * 1.5:
            severity = AlertSeverity.HIGH
        else:
            severity = AlertSeverity.MEDIUM

        confidence = min(MAX_CONFIDENCE, (z_score / threshold) * 0.5)

        logger.debug(
            "anomaly_detected",
            metric=metric,
            z_score=round(z_score, 4),
            severity=severity.value,
            sample_size=len(samples),
        )

        return AnomalyVerdict(
            metric=metric,
            severity=severity,
            message=(
                f"{metric} value {format_value(current)} deviates "
                f"{z_score:.2f} standard deviations from normal"
            ),
            current_value=current,
            expected_value=mean,
            std_dev=std,
            z_score=z_score,
            confidence=confidence,
            sample_size=len(samples),
            suggested_actions=suggested_actions_for(metric),
        )

    @staticmethod
    def _calculate_mean(values: Sequence[float]) -> float:
        return sum(values) / len(values)

    @staticmethod
    def _calculate_std(values: Sequence[float], mean: float) -> float:
        """Population standard deviation: sqrt(sum((x - mean)^2) / n)."""
        variance = sum((x - mean) ** 2 for x in values) / len(values)
        return math.sqrt(variance)


def format_value(value: float) -> str:
    """Render integral floats without a trailing .0."""
    if value.is_integer():
        return str(int(value))
    return str(value)


def create_anomaly_detector() -> AnomalyDetector:
    """
    Factory function to create an AnomalyDetector.

    Returns:
        AnomalyDetector: A new detector instance.
    """
    return AnomalyDetector()

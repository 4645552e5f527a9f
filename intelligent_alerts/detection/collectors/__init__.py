"""
Source collectors.

Each collector queries one metric category and returns candidate alerts.

Components:
    realtime: Statistical anomalies in marketing metrics
    performance: API response time and error rate
    business: Daily revenue and conversion rate
    workflow: Workflow execution failure rate
"""

from intelligent_alerts.detection.collectors.base import (
    ChannelRouter,
    SourceCollector,
    safe_collect,
    to_number,
)
from intelligent_alerts.detection.collectors.business import BusinessCollector
from intelligent_alerts.detection.collectors.performance import PerformanceCollector
from intelligent_alerts.detection.collectors.realtime import RealtimeCollector
from intelligent_alerts.detection.collectors.workflow import WorkflowCollector

__all__ = [
    "ChannelRouter",
    "SourceCollector",
    "safe_collect",
    "to_number",
    "BusinessCollector",
    "PerformanceCollector",
    "RealtimeCollector",
    "WorkflowCollector",
]

"""
Workflow collector: failure rate of workflow executions in the last hour.
"""

from datetime import datetime, timedelta
from typing import List

from intelligent_alerts.detection.collectors.base import SourceCollector
from intelligent_alerts.models.alerts import Alert, AlertSeverity, AlertType

WORKFLOW_WINDOW = timedelta(hours=1)
FAILURE_RATE_THRESHOLD_PCT = 10.0
FAILURE_RATE_CRITICAL_PCT = 30.0
WORKFLOW_CONFIDENCE = 0.95


class WorkflowCollector(SourceCollector):
    """Alerts when more than 10% of recent workflow executions failed."""

    name = "workflow_monitor"
    category = "workflow"

    async def collect(self, now: datetime) -> List[Alert]:
        rows = await self._query(
            "workflow_executions",
            now - WORKFLOW_WINDOW,
            now,
            ascending=False,
        )
        if not rows:
            return []

        total = len(rows)
        failed = sum(1 for r in rows if r.get("status") == "failed")
        failure_rate = failed / total * 100

        if failure_rate <= FAILURE_RATE_THRESHOLD_PCT:
            return []

        if failure_rate > FAILURE_RATE_CRITICAL_PCT:
            severity = AlertSeverity.CRITICAL
        else:
            severity = AlertSeverity.HIGH

        return [
            self._build_alert(
                now,
                AlertType.WORKFLOW,
                severity,
                "workflow_failure_rate",
                title="High workflow failure rate",
                message=f"{failure_rate:.1f}% of workflows failed in the last hour",
                current_value=failure_rate,
                threshold=FAILURE_RATE_THRESHOLD_PCT,
                confidence=WORKFLOW_CONFIDENCE,
                auto_resolve=False,
                suggested_actions=[
                    "Check workflow configurations",
                    "Review error logs",
                    "Verify external integrations",
                    "Check system resources",
                ],
                metadata={
                    "failed_workflows": failed,
                    "total_workflows": total,
                    "time_window": "1_hour",
                },
            )
        ]

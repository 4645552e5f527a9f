"""
REST API endpoints for the alerting engine.

This package provides FastAPI routers for:
- Alerts: Active alerts, statistics, acknowledge and resolve
- Thresholds: Read and partially update thresholds
- Health: Engine and infrastructure status
"""

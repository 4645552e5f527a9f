"""
Intelligent Alerting Engine.

Periodically samples operational and business metrics, detects threshold
breaches and statistical anomalies, and turns them into deduplicated,
rate-limited, severity-classified alerts routed to notification channels.

This package provides:
- Data models for alerts, thresholds, and notification channels
- Abstract interfaces for metric sources, alert persistence and transports
- Configuration management
- Storage clients for PostgreSQL and Redis
- The detection pipeline, dispatcher, lifecycle manager and scheduler
"""

__version__ = "0.1.0"

"""
Configuration management for the alerting engine.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models to ensure
type safety and catch configuration errors early.

Configuration is loaded from YAML files in the config/ directory:
    - engine.yaml: Engine, anomaly detection, notification and logging settings
    - thresholds.yaml: Per-metric warning/critical bounds
    - channels.yaml: Channel severity filters, routing and SMTP relay

Environment variables override connection settings and enable channels:
    - REDIS_URL, DATABASE_URL, LOG_LEVEL
    - ALERT_EMAIL_ENABLED, ALERT_EMAIL_RECIPIENTS, SMTP_HOST, SMTP_PORT, SMTP_FROM
    - SLACK_WEBHOOK_URL, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID, ALERT_WEBHOOK_URL

Example:
    >>> from intelligent_alerts.config import load_config
    >>> config = load_config()
    >>> config.engine.anomaly_detection.z_threshold
    3.5
"""

from intelligent_alerts.config.loader import (
    ConfigLoadError,
    ConfigLoader,
    channels_from_env,
    load_config,
)
from intelligent_alerts.config.models import (
    DEFAULT_SEVERITY_CHANNELS,
    AnomalyDetectionConfig,
    AppConfig,
    ChannelsConfig,
    EngineConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MLEnhancementConfig,
    NotificationSettings,
    PostgresConnectionConfig,
    RedisConnectionConfig,
    SmtpConfig,
    default_thresholds,
)

__all__: list[str] = [
    # Loader
    "load_config",
    "ConfigLoader",
    "ConfigLoadError",
    "channels_from_env",
    # Enums
    "LogFormat",
    "LogLevel",
    # Engine config
    "AnomalyDetectionConfig",
    "NotificationSettings",
    "MLEnhancementConfig",
    "EngineConfig",
    # Thresholds and channels
    "default_thresholds",
    "DEFAULT_SEVERITY_CHANNELS",
    "SmtpConfig",
    "ChannelsConfig",
    # Infrastructure
    "LoggingConfig",
    "RedisConnectionConfig",
    "PostgresConnectionConfig",
    # Root config
    "AppConfig",
]

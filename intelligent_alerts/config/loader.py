"""
Configuration loader for YAML-based application configuration.

This module provides utilities to load and validate configuration from YAML
files. All configuration is validated using Pydantic models so that bad
values are caught at startup instead of in the middle of a tick.

Configuration files expected:
    - config/engine.yaml: Engine settings and logging (required)
    - config/thresholds.yaml: Per-metric thresholds (optional)
    - config/channels.yaml: Channel filters, routing and SMTP relay (optional)

Environment variables override:
    - REDIS_URL: Redis connection URL
    - DATABASE_URL: PostgreSQL connection URL
    - LOG_LEVEL: Application log level
    - ALERT_EMAIL_ENABLED, ALERT_EMAIL_RECIPIENTS: E-mail channel
    - SMTP_HOST, SMTP_PORT, SMTP_FROM: SMTP relay
    - SLACK_WEBHOOK_URL: Slack channel
    - TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID: Telegram channel
    - ALERT_WEBHOOK_URL: Generic webhook channel

Example:
    >>> from intelligent_alerts.config.loader import load_config
    >>> config = load_config("config")
    >>> config.engine.update_interval
    30.0
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog
import yaml
from pydantic import ValidationError

from intelligent_alerts.config.models import (
    AppConfig,
    ChannelsConfig,
    EngineConfig,
    LoggingConfig,
    LogLevel,
    PostgresConnectionConfig,
    RedisConnectionConfig,
    SmtpConfig,
    default_thresholds,
)
from intelligent_alerts.exceptions import AlertEngineError, ThresholdValidationError
from intelligent_alerts.models.alerts import (
    AlertSeverity,
    AlertThreshold,
    ChannelType,
    NotificationChannel,
)

logger = structlog.get_logger(__name__)

# Severity filters applied to channels enabled from the environment.
ENV_CHANNEL_FILTERS: Dict[ChannelType, List[AlertSeverity]] = {
    ChannelType.EMAIL: [
        AlertSeverity.MEDIUM,
        AlertSeverity.HIGH,
        AlertSeverity.CRITICAL,
    ],
    ChannelType.SLACK: [AlertSeverity.HIGH, AlertSeverity.CRITICAL],
    ChannelType.TELEGRAM: [AlertSeverity.CRITICAL],
    ChannelType.WEBHOOK: [AlertSeverity.HIGH, AlertSeverity.CRITICAL],
}


class ConfigLoadError(AlertEngineError):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


def _mapping(value: Any, section: str, file_path: Path) -> Dict[str, Any]:
    """
    Return a YAML section as a dict.

    A missing or empty section yields {}.

    Raises:
        ConfigLoadError: If the section is present but not a mapping.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(
            f"Section '{section}' in {file_path} must be a mapping, "
            f"got {type(value).__name__}",
            file_path=file_path,
        )
    return value


def channels_from_env(
    environ: Mapping[str, str],
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[ChannelType, NotificationChannel]:
    """
    Derive notification channels from environment presence.

    A channel is enabled when its credentials are present in the
    environment and channels.yaml does not disable it. Values from
    channels.yaml (severity_filter, config entries such as templates)
    are layered under the environment-provided endpoints.

    Args:
        environ: Environment mapping (usually os.environ).
        overrides: Raw "channels" section of channels.yaml.

    Returns:
        Dict[ChannelType, NotificationChannel]: Channels keyed by type.
            The dashboard channel is added by ChannelsConfig.
    """
    overrides = overrides or {}
    detected: Dict[ChannelType, Dict[str, Any]] = {}

    recipients = [
        r.strip()
        for r in environ.get("ALERT_EMAIL_RECIPIENTS", "").split(",")
        if r.strip()
    ]
    detected[ChannelType.EMAIL] = {
        "enabled": environ.get("ALERT_EMAIL_ENABLED", "").lower() == "true"
        and bool(recipients),
        "config": {"recipients": recipients},
    }

    slack_url = environ.get("SLACK_WEBHOOK_URL", "")
    detected[ChannelType.SLACK] = {
        "enabled": bool(slack_url),
        "config": {"endpoint": slack_url} if slack_url else {},
    }

    bot_token = environ.get("TELEGRAM_BOT_TOKEN", "")
    chat_id = environ.get("TELEGRAM_CHAT_ID", "")
    detected[ChannelType.TELEGRAM] = {
        "enabled": bool(bot_token and chat_id),
        "config": {"api_key": bot_token, "chat_id": chat_id}
        if bot_token and chat_id
        else {},
    }

    webhook_url = environ.get("ALERT_WEBHOOK_URL", "")
    detected[ChannelType.WEBHOOK] = {
        "enabled": bool(webhook_url),
        "config": {"endpoint": webhook_url} if webhook_url else {},
    }

    channels: Dict[ChannelType, NotificationChannel] = {}
    for channel_type, env_data in detected.items():
        file_data = overrides.get(channel_type.value) or {}
        config = dict(file_data.get("config") or {})
        config.update(env_data["config"])
        channels[channel_type] = NotificationChannel(
            type=channel_type,
            config=config,
            enabled=env_data["enabled"] and file_data.get("enabled", True),
            severity_filter=file_data.get(
                "severity_filter", ENV_CHANNEL_FILTERS[channel_type]
            ),
        )

    dashboard_data = overrides.get(ChannelType.DASHBOARD.value) or {}
    if dashboard_data.get("config"):
        channels[ChannelType.DASHBOARD] = NotificationChannel(
            type=ChannelType.DASHBOARD,
            config=dashboard_data["config"],
        )

    return channels


class ConfigLoader:
    """
    Loads and validates application configuration from YAML files.

    Expects the following directory structure:
        config/
        ├── engine.yaml       - Engine, anomaly detection and logging
        ├── thresholds.yaml   - Per-metric thresholds (optional)
        └── channels.yaml     - Channel overrides and routing (optional)

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> [t.metric for t in config.thresholds]
        ['revenue', 'conversion_rate', 'response_time', 'error_rate']
    """

    def __init__(
        self,
        config_dir: Union[Path, str] = "config",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').
            environ: Environment mapping; defaults to os.environ.

        Raises:
            ConfigLoadError: If config directory does not exist.
        """
        self.config_dir = Path(config_dir)
        self.environ = os.environ if environ is None else environ
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str, required: bool = True) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'engine.yaml').
            required: Raise when the file is missing instead of returning {}.

        Returns:
            Dict containing parsed YAML content.

        Raises:
            ConfigLoadError: If file not found (when required), empty,
                not a mapping, or invalid YAML.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            if required:
                raise ConfigLoadError(
                    f"Configuration file not found: {file_path}",
                    file_path=file_path,
                )
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            raise ConfigLoadError(
                f"Configuration file is empty: {file_path}",
                file_path=file_path,
            )
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_engine(self) -> tuple[EngineConfig, LoggingConfig]:
        """
        Load engine and logging settings from engine.yaml.

        Returns:
            Tuple of (EngineConfig, LoggingConfig).

        Raises:
            ConfigLoadError: If validation fails.
        """
        file_path = self.config_dir / "engine.yaml"
        data = self._load_yaml("engine.yaml")
        engine_data = _mapping(data.get("engine"), "engine", file_path)
        logging_data = dict(_mapping(data.get("logging"), "logging", file_path))

        try:
            engine = EngineConfig.model_validate(engine_data)
            level = self.environ.get("LOG_LEVEL")
            if level:
                try:
                    logging_data["level"] = LogLevel(level.upper())
                except ValueError:
                    logger.warning("invalid_log_level_ignored", level=level)
            logging_config = LoggingConfig.model_validate(logging_data)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid engine configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        return engine, logging_config

    def _load_thresholds(self) -> List[AlertThreshold]:
        """
        Load thresholds from thresholds.yaml.

        A missing file yields the built-in defaults.

        Returns:
            List of validated AlertThreshold objects.

        Raises:
            ConfigLoadError: If a threshold is malformed or its bounds are
                inconsistent.
        """
        file_path = self.config_dir / "thresholds.yaml"
        data = self._load_yaml("thresholds.yaml", required=False)
        if not data:
            return default_thresholds()

        items = data.get("thresholds") or []
        if not isinstance(items, list):
            raise ConfigLoadError(
                f"Section 'thresholds' in {file_path} must be a list, "
                f"got {type(items).__name__}",
                file_path=file_path,
            )

        try:
            thresholds = [
                AlertThreshold.model_validate(item).validate_bounds()
                for item in items
            ]
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid threshold configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except ThresholdValidationError as e:
            raise ConfigLoadError(
                f"Inconsistent threshold bounds: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if not thresholds:
            raise ConfigLoadError(
                "No thresholds configured in thresholds.yaml",
                file_path=file_path,
            )
        return thresholds

    def _load_channels(self) -> ChannelsConfig:
        """
        Load channel overrides from channels.yaml and merge the environment.

        Returns:
            ChannelsConfig object.

        Raises:
            ConfigLoadError: If validation fails.
        """
        file_path = self.config_dir / "channels.yaml"
        data = self._load_yaml("channels.yaml", required=False)

        overrides = _mapping(data.get("channels"), "channels", file_path)
        for name, entry in overrides.items():
            entry_data = _mapping(entry, f"channels.{name}", file_path)
            _mapping(entry_data.get("config"), f"channels.{name}.config", file_path)
        smtp_base = _mapping(data.get("smtp"), "smtp", file_path)

        try:
            smtp_data = _smtp_overrides(self.environ, smtp_base)

            kwargs: Dict[str, Any] = {
                "channels": channels_from_env(self.environ, overrides),
                "smtp": SmtpConfig.model_validate(smtp_data),
            }
            if data.get("routing"):
                kwargs["routing"] = data["routing"]
            return ChannelsConfig.model_validate(kwargs)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid channel configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e

    def load(self) -> AppConfig:
        """
        Load and validate all configuration files.

        Returns:
            AppConfig: Validated application configuration.

        Raises:
            ConfigLoadError: If any configuration is invalid or missing.
        """
        try:
            engine, logging_config = self._load_engine()
            return AppConfig(
                engine=engine,
                thresholds=self._load_thresholds(),
                channels=self._load_channels(),
                redis=_redis_from_env(self.environ),
                postgres=_postgres_from_env(self.environ),
                logging=logging_config,
            )
        except ConfigLoadError:
            raise
        except (ValidationError, ThresholdValidationError) as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e


def _smtp_overrides(
    environ: Mapping[str, str],
    base: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """SMTP settings from channels.yaml with SMTP_* variables on top."""
    smtp_data = dict(base or {})
    if environ.get("SMTP_HOST"):
        smtp_data["host"] = environ["SMTP_HOST"]
    if environ.get("SMTP_PORT"):
        smtp_data["port"] = environ["SMTP_PORT"]
    if environ.get("SMTP_FROM"):
        smtp_data["sender"] = environ["SMTP_FROM"]
    return smtp_data


def _redis_from_env(environ: Mapping[str, str]) -> RedisConnectionConfig:
    """REDIS_URL, default redis://localhost:6379."""
    return RedisConnectionConfig(url=environ.get("REDIS_URL", "redis://localhost:6379"))


def _postgres_from_env(environ: Mapping[str, str]) -> PostgresConnectionConfig:
    url = environ.get("DATABASE_URL")
    if url:
        return PostgresConnectionConfig(url=url)
    return PostgresConnectionConfig()


def load_config(
    config_dir: Union[Path, str] = "config",
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Load application configuration, falling back to defaults.

    Invalid or missing configuration never prevents startup: the error is
    logged and the built-in defaults (plus environment-derived channels and
    connection URLs) are returned instead.

    Args:
        config_dir: Path to configuration directory (default: 'config').
        environ: Environment mapping; defaults to os.environ.

    Returns:
        AppConfig: Validated application configuration.

    Example:
        >>> config = load_config("missing-dir")
        >>> config.engine.max_alerts_per_hour
        100
    """
    env = os.environ if environ is None else environ
    try:
        return ConfigLoader(config_dir, env).load()
    except ConfigLoadError as e:
        logger.warning(
            "config_load_failed_using_defaults",
            config_dir=str(config_dir),
            file_path=str(e.file_path) if e.file_path else None,
            error=e.message,
        )

    try:
        return AppConfig(
            channels=ChannelsConfig(
                channels=channels_from_env(env),
                smtp=SmtpConfig.model_validate(_smtp_overrides(env)),
            ),
            redis=_redis_from_env(env),
            postgres=_postgres_from_env(env),
        )
    except ValidationError as e:
        logger.error("environment_config_invalid", error=str(e))
        return AppConfig()

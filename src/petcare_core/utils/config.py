"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
database URL parsing, logging configuration, and the typed settings objects
used by the notification subsystem and the security helpers.
"""

import logging
import logging.config
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs, urlparse

from ..exceptions import EnvironmentException


class ConfigError(EnvironmentException):
    """Exception raised for configuration-related errors."""

    pass


class LogLevel(Enum):
    """Enumeration for log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ConfigError(f"Required environment variable '{key}' is not set")

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or not an integer
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}"
            )

    @staticmethod
    def get_bool(
        key: str, default: Optional[bool] = None, required: bool = False
    ) -> Optional[bool]:
        """
        Get a boolean environment variable.

        ``true``, ``1``, ``yes``, ``on`` and ``enabled`` are truthy.
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        return value.lower() in ("true", "1", "yes", "on", "enabled")


@dataclass
class DatabaseConfig:
    """Configuration for database connection."""

    host: str
    port: int
    database: str
    username: str
    password: str
    driver: str = "postgresql+asyncpg"
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600
    echo: bool = False

    @property
    def url(self) -> str:
        """Generate database URL from configuration."""
        if self.password:
            auth = f"{self.username}:{self.password}"
        else:
            auth = self.username
        return f"{self.driver}://{auth}@{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConfig":
        """Create DatabaseConfig from database URL."""
        parsed = urlparse(url)

        if not parsed.scheme:
            raise ConfigError("Database URL must include a scheme")

        if not parsed.hostname:
            raise ConfigError("Database URL must include a hostname")

        query_params = parse_qs(parsed.query)

        return cls(
            host=parsed.hostname,
            port=parsed.port or 5432,
            database=parsed.path.lstrip("/") if parsed.path else "",
            username=parsed.username or "",
            password=parsed.password or "",
            driver=parsed.scheme,
            pool_size=int(query_params.get("pool_size", [5])[0]),
            max_overflow=int(query_params.get("max_overflow", [10])[0]),
            pool_timeout=int(query_params.get("pool_timeout", [30])[0]),
            pool_recycle=int(query_params.get("pool_recycle", [3600])[0]),
            echo=query_params.get("echo", ["false"])[0].lower() == "true",
        )

    @classmethod
    def from_environment(cls) -> "DatabaseConfig":
        """
        Build the configuration from ``DATABASE_URL`` or the ``DB_*`` parts.
        """
        database_url = EnvironmentConfig.get_str("DATABASE_URL")
        if database_url:
            return cls.from_url(database_url)

        return cls(
            host=EnvironmentConfig.get_str("DB_HOST", "localhost"),
            port=EnvironmentConfig.get_int("DB_PORT", 5432),
            database=EnvironmentConfig.get_str("DB_NAME", "petcare"),
            username=EnvironmentConfig.get_str("DB_USER", "postgres"),
            password=EnvironmentConfig.get_str("DB_PASSWORD", ""),
            pool_size=EnvironmentConfig.get_int("DB_POOL_SIZE", 5),
            echo=EnvironmentConfig.get_bool("DB_ECHO", False),
        )


_CRON_EVERY_N_MINUTES = re.compile(r"^\*/(\d+) \* \* \* \*$")


def parse_check_interval(value: Union[str, int, None], default: int = 15) -> int:
    """
    Parse the notification check interval into minutes.

    Accepts a plain number of minutes or a cron expression of the form
    ``*/N * * * *``.

    Raises:
        ConfigError: If the value is neither form or is not positive
    """
    if value is None or value == "":
        return default

    if isinstance(value, int):
        minutes = value
    else:
        text = value.strip()
        match = _CRON_EVERY_N_MINUTES.match(text)
        if match:
            minutes = int(match.group(1))
        elif text.isdigit():
            minutes = int(text)
        else:
            raise ConfigError(
                f"Unsupported notification check interval: {value!r}. "
                "Use minutes or '*/N * * * *'"
            )

    if minutes <= 0:
        raise ConfigError("Notification check interval must be positive")
    return minutes


@dataclass
class NotificationSettings:
    """Settings for reminder windows and delivery channels."""

    appointment_reminder_hours: int = 24
    vaccination_reminder_days: int = 7
    check_interval_minutes: int = 15
    appointment_lookback_hours: int = 48
    vaccination_lookback_days: int = 14

    # Email (SMTP)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: Optional[str] = None

    # Push (Pusher)
    pusher_app_id: Optional[str] = None
    pusher_key: Optional[str] = None
    pusher_secret: Optional[str] = None
    pusher_cluster: str = "us2"

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host and self.email_from)

    @property
    def push_configured(self) -> bool:
        return bool(self.pusher_app_id and self.pusher_key and self.pusher_secret)

    @classmethod
    def from_environment(cls) -> "NotificationSettings":
        """Create notification settings from environment variables."""
        return cls(
            appointment_reminder_hours=EnvironmentConfig.get_int(
                "APPOINTMENT_REMINDER_HOURS", 24
            ),
            vaccination_reminder_days=EnvironmentConfig.get_int(
                "VACCINATION_REMINDER_DAYS", 7
            ),
            check_interval_minutes=parse_check_interval(
                EnvironmentConfig.get_str("NOTIFICATION_CHECK_INTERVAL")
            ),
            smtp_host=EnvironmentConfig.get_str("SMTP_HOST"),
            smtp_port=EnvironmentConfig.get_int("SMTP_PORT", 587),
            smtp_username=EnvironmentConfig.get_str("SMTP_USERNAME"),
            smtp_password=EnvironmentConfig.get_str("SMTP_PASSWORD"),
            smtp_use_tls=EnvironmentConfig.get_bool("SMTP_USE_TLS", True),
            email_from=EnvironmentConfig.get_str("EMAIL_FROM"),
            pusher_app_id=EnvironmentConfig.get_str("PUSHER_APP_ID"),
            pusher_key=EnvironmentConfig.get_str("PUSHER_KEY"),
            pusher_secret=EnvironmentConfig.get_str("PUSHER_SECRET"),
            pusher_cluster=EnvironmentConfig.get_str("PUSHER_CLUSTER", "us2"),
        )


@dataclass
class SecuritySettings:
    """Settings for password hashing and bearer tokens."""

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7

    @classmethod
    def from_environment(cls) -> "SecuritySettings":
        """
        Create security settings from environment variables.

        Raises:
            ConfigError: If ``JWT_SECRET`` is not set
        """
        return cls(
            jwt_secret=EnvironmentConfig.get_str("JWT_SECRET", required=True),
            jwt_algorithm=EnvironmentConfig.get_str("JWT_ALGORITHM", "HS256"),
            jwt_expires_minutes=EnvironmentConfig.get_int(
                "JWT_EXPIRES_MINUTES", 60 * 24 * 7
            ),
        )


class LoggingConfigurator:
    """Utility class for configuring logging."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configure_basic_logging(
        level: Union[str, LogLevel] = LogLevel.INFO,
        format_string: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> None:
        """
        Configure basic logging for the application.

        Args:
            level: Logging level
            format_string: Custom format string
            log_file: Optional log file path
        """
        if isinstance(level, LogLevel):
            level = level.value

        basic_config_args: Dict[str, Any] = {
            "level": level,
            "format": format_string or LoggingConfigurator.DEFAULT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }

        if log_file:
            basic_config_args["filename"] = log_file
            basic_config_args["filemode"] = "a"

        logging.basicConfig(**basic_config_args)

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
        level: Union[str, LogLevel] = LogLevel.INFO,
    ) -> None:
        """
        Configure logging from a dictionary, a file, or the package default.

        Args:
            config_dict: Logging configuration dictionary
            config_file: Path to logging configuration file
            level: Level for the ``petcare_core`` logger in the default setup
        """
        if isinstance(level, LogLevel):
            level = level.value

        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            default_config = {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
                    "detailed": {
                        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(message)s"
                    },
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "standard",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    "petcare_core": {
                        "level": level,
                        "handlers": ["console"],
                        "propagate": False,
                    }
                },
                "root": {"level": "WARNING", "handlers": ["console"]},
            }
            logging.config.dictConfig(default_config)

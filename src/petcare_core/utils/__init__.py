"""
Utility functions and helpers for the petcare-core package.

This module provides environment configuration, logging setup and datetime
helpers used across the package.
"""

from .config import (
    ConfigError,
    DatabaseConfig,
    EnvironmentConfig,
    LoggingConfigurator,
    LogLevel,
    NotificationSettings,
    SecuritySettings,
    parse_check_interval,
)
from .datetime_utils import (
    combine_utc,
    date_window,
    ensure_utc,
    format_date,
    format_time,
    get_current_utc,
    reminder_time,
    utc_today,
)

__all__ = [
    # Configuration
    "ConfigError",
    "DatabaseConfig",
    "EnvironmentConfig",
    "LoggingConfigurator",
    "LogLevel",
    "NotificationSettings",
    "SecuritySettings",
    "parse_check_interval",
    # DateTime utilities
    "get_current_utc",
    "utc_today",
    "ensure_utc",
    "combine_utc",
    "reminder_time",
    "date_window",
    "format_date",
    "format_time",
]

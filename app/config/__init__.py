"""Configuration module"""
from app.config.settings import (
    AppConfig,
    SmtpConfig,
    AlertConfig,
    ArchiveConfig,
    DatabaseConfig,
    get_config,
    reset_config,
)
from app.config.timezone import TimezoneConverter, get_timezone_converter

__all__ = [
    "AppConfig",
    "SmtpConfig",
    "AlertConfig",
    "ArchiveConfig",
    "DatabaseConfig",
    "get_config",
    "reset_config",
    "TimezoneConverter",
    "get_timezone_converter",
]

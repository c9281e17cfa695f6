"""
Configuration management using Pydantic settings.
Loads configuration from environment variables.
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SmtpConfig(BaseSettings):
    """SMTP email configuration (only required when alerts are enabled)"""
    server: Optional[str] = Field(None, alias="SMTP__SERVER")
    port: int = Field(465, alias="SMTP__PORT")
    user: Optional[str] = Field(None, alias="SMTP__USER")
    password: Optional[str] = Field(None, alias="SMTP__PASSWORD")
    from_email: Optional[str] = Field(None, alias="SMTP__FROM_EMAIL")
    to_email: Optional[str] = Field(None, alias="SMTP__TO_EMAIL")
    use_ssl: bool = Field(True, alias="SMTP__USE_SSL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class AlertConfig(BaseSettings):
    """Error alert configuration"""
    enabled: bool = Field(False, alias="ALERTS__ENABLED")
    repeat_window_minutes: int = Field(60, alias="ALERTS__REPEAT_WINDOW_MINUTES")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class ArchiveConfig(BaseSettings):
    """Archival scheduler configuration"""
    enabled: bool = Field(True, alias="ARCHIVE__ENABLED")
    interval_seconds: int = Field(60, alias="ARCHIVE__INTERVAL_SECONDS")
    run_on_startup: bool = Field(False, alias="ARCHIVE__RUN_ON_STARTUP")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class DatabaseConfig(BaseSettings):
    """Database configuration"""
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    user: Optional[str] = Field(None, alias="POSTGRES_USER")
    password: Optional[str] = Field(None, alias="POSTGRES_PASSWORD")
    db: Optional[str] = Field(None, alias="POSTGRES_DB")
    host: str = Field("localhost", alias="POSTGRES_HOST")
    port: int = Field(5432, alias="POSTGRES_PORT")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def url(self) -> str:
        """Get database connection URL (DATABASE_URL wins over the POSTGRES_* parts)"""
        if self.database_url:
            return self.database_url
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class AppConfig(BaseSettings):
    """Main application configuration"""
    app_name: str = Field("eams", alias="APP_NAME")
    timezone: str = Field("UTC", alias="APP_TIMEZONE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_structured: bool = Field(True, alias="LOG_STRUCTURED")
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def validate_all(self) -> None:
        """Validate all configuration sections"""
        errors = []

        # Validate Database config
        if not self.database.database_url:
            if not self.database.user:
                errors.append("POSTGRES_USER is required (or set DATABASE_URL)")
            if not self.database.password:
                errors.append("POSTGRES_PASSWORD is required (or set DATABASE_URL)")
            if not self.database.db:
                errors.append("POSTGRES_DB is required (or set DATABASE_URL)")

        # Validate Archive config
        if self.archive.interval_seconds <= 0:
            errors.append("ARCHIVE__INTERVAL_SECONDS must be positive")

        # Validate alerting: SMTP only matters when alerts are switched on
        if self.alerts.enabled:
            if not self.smtp.server:
                errors.append("SMTP__SERVER is required when ALERTS__ENABLED is set")
            if not self.smtp.from_email:
                errors.append("SMTP__FROM_EMAIL is required when ALERTS__ENABLED is set")
            if not self.smtp.to_email:
                errors.append("SMTP__TO_EMAIL is required when ALERTS__ENABLED is set")
        if self.alerts.repeat_window_minutes <= 0:
            errors.append("ALERTS__REPEAT_WINDOW_MINUTES must be positive")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL '{self.log_level}' is not a valid level")

        if errors:
            raise ValueError(f"Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# Global config instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = AppConfig()
        _config.validate_all()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment"""
    global _config
    _config = None

"""
Centralized configuration management for the UX metrics application.

Provides environment-specific configuration with validation and type safety
using pydantic-settings. Every section reads its own environment prefix.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """
    Local store configuration.

    The store is a single SQLite file (or an in-memory database when
    ``sqlite_path`` is ``":memory:"``). ``url`` overrides both.

    Example:
        >>> DatabaseConfig(sqlite_path="./test.db").get_connection_url()
        'sqlite:///./test.db'
    """

    sqlite_path: str = Field("./uxmetrics.db", description="SQLite database file path")
    url: str | None = Field(None, description="Full SQLAlchemy URL, overrides sqlite_path")
    echo: bool = Field(False, description="Enable SQL query logging")

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def validate_sqlite_path(cls, v):
        """Ensure the parent directory exists and the file has a .db suffix."""
        if v and v != ":memory:":
            path = Path(v)
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.suffix:
                v = str(path.with_suffix(".db"))
        return v

    @property
    def backend(self) -> str:
        url = self.get_connection_url()
        return url.split(":", 1)[0].split("+", 1)[0]

    def get_connection_url(self) -> str:
        if self.url:
            return self.url
        if self.sqlite_path == ":memory:":
            return "sqlite:///:memory:"
        return f"sqlite:///{self.sqlite_path}"

    def get_engine_options(self) -> dict[str, Any]:
        return {"echo": self.echo, "future": True}


class LoggingConfig(BaseSettings):
    """
    Logging configuration settings.

    Example:
        >>> LoggingConfig(level="DEBUG", file_path=None).get_file_handler_config() is None
        True
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Minimum logging level"
    )
    file_path: str | None = Field("./logs/uxmetrics.log", description="Log file path")
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024, description="Max log file size in bytes")
    backup_count: int = Field(5, ge=1, description="Number of backup log files")
    structured: bool = Field(True, description="Use structured JSON logging")
    console_enabled: bool = Field(True, description="Enable console output")

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}

    def get_file_handler_config(self) -> dict[str, Any] | None:
        if not self.file_path:
            return None

        return {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": self.file_path,
            "maxBytes": self.max_bytes,
            "backupCount": self.backup_count,
            "encoding": "utf-8",
        }


class AnalyticsConfig(BaseSettings):
    """Display settings for aggregated metrics."""

    display_decimals: int = Field(1, ge=0, le=6, description="Decimals shown for percentages")
    seq_scale_max: int = Field(7, description="Upper bound of the SEQ rating scale")

    model_config = {"env_prefix": "ANALYTICS_", "case_sensitive": False}


class ExportConfig(BaseSettings):
    """Report and backup file settings."""

    report_dir: str = Field("./reports", description="Directory for exported reports")
    backup_dir: str = Field("./backups", description="Directory for data backups")
    backup_version: str = Field("1.0.0", description="Backup format version string")

    model_config = {"env_prefix": "EXPORT_", "case_sensitive": False}


class ApplicationConfig(BaseSettings):
    """
    Main application configuration.

    Example:
        >>> config = get_settings()
        >>> config.app.environment
        'development'
    """

    environment: Literal["development", "testing", "test", "production"] = Field(
        "development", description="Application environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    version: str = Field("0.1.0", description="Application version")
    load_seed_data_if_empty: bool = Field(
        False, description="Load demo data on first start when the store is empty"
    )

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def debug_implies_development(self):
        """Ensure debug mode is only enabled outside production."""
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """
    Complete application settings container with lazily built sections.

    Example:
        >>> settings = get_settings()
        >>> settings.database.get_connection_url()
        'sqlite:///./uxmetrics.db'
    """

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._database: DatabaseConfig | None = None
        self._logging: LoggingConfig | None = None
        self._analytics: AnalyticsConfig | None = None
        self._export: ExportConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            if "LOG_LEVEL" in os.environ:
                self._logging = LoggingConfig()
            else:
                level = "DEBUG" if self.app.debug else "INFO"
                if self.app.environment == "production":
                    level = "WARNING"
                self._logging = LoggingConfig(level=level)
        return self._logging

    @property
    def analytics(self) -> AnalyticsConfig:
        if self._analytics is None:
            self._analytics = AnalyticsConfig()
        return self._analytics

    @property
    def export(self) -> ExportConfig:
        if self._export is None:
            self._export = ExportConfig()
        return self._export

    def is_development(self) -> bool:
        return self.app.environment == "development"

    def is_testing(self) -> bool:
        return self.app.environment in ("testing", "test")

    def get_environment_info(self) -> dict[str, Any]:
        """Get summary of current environment configuration."""
        return {
            "environment": self.app.environment,
            "version": self.app.version,
            "debug": self.app.debug,
            "database_backend": self.database.backend,
            "logging_level": self.logging.level,
            "backup_version": self.export.backup_version,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings instance (cached per process)."""
    return Settings()


def load_settings_from_file(file_path: str) -> Settings:
    """
    Load settings from a JSON configuration file.

    Each top-level section maps onto an environment prefix, so
    ``{"db": {"sqlite_path": "x.db"}}`` sets ``DB_SQLITE_PATH``.

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        ValueError: If file format is unsupported
    """
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    if config_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

    with open(config_path, encoding="utf-8") as f:
        config_data = json.load(f)

    for section, values in config_data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                os.environ[f"{section.upper()}_{key.upper()}"] = str(value)

    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs: Any) -> Settings:
    """
    Override settings through environment variables, e.g. for tests.

    Example:
        >>> settings = override_settings(app_environment="testing", db_sqlite_path=":memory:")
    """
    for key, value in kwargs.items():
        os.environ[key.upper()] = str(value)

    get_settings.cache_clear()
    return get_settings()


def reset_settings() -> None:
    """Reset settings cache to reload from environment."""
    get_settings.cache_clear()

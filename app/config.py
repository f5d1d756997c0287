"""
Configuration Management for the Transit Movements Validator

This module provides centralized, environment-driven configuration for the
validation service and its logging setup.
"""

import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Every field can be overridden by the upper-cased environment variable of
    the same name (e.g. ``STREAM_READ_TIMEOUT=5``).
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application Settings
    app_name: str = Field(default="Transit Movements Validator")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    # Server Settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=9496)
    reload: bool = Field(default=False)

    # API Settings
    api_prefix: str = Field(default="")
    cors_origins: str = Field(default="*")

    # Logging Settings
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file: Optional[str] = Field(default=None)

    # Streaming Settings
    temp_dir: Optional[str] = Field(default=None, validate_default=True)
    stream_read_timeout: float = Field(default=20.0, gt=0)
    stream_chunk_size: int = Field(default=64 * 1024, gt=0)

    # Validation Settings
    eager_schema_loading: bool = Field(default=False)
    business_validation_enabled: bool = Field(default=True)

    # Sentry Settings
    sentry_enabled: bool = Field(default=False)
    sentry_dsn: Optional[str] = Field(default=None)
    sentry_environment: str = Field(default="development")
    sentry_traces_sample_rate: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {list(LOG_LEVELS)}")
        return level

    @field_validator("temp_dir", mode="before")
    @classmethod
    def default_temp_dir(cls, v):
        """Spool files go to the platform temp directory unless configured."""
        return v or tempfile.gettempdir()

    def get_temp_path(self) -> Path:
        """Spool directory as a path, created if missing."""
        spool_dir = Path(self.temp_dir or tempfile.gettempdir())
        spool_dir.mkdir(parents=True, exist_ok=True)
        return spool_dir

    def get_cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def get_cors_config(self) -> Dict[str, Any]:
        """Get CORS middleware configuration."""
        origins = self.get_cors_origins()
        return {
            "allow_origins": origins,
            "allow_credentials": "*" not in origins,
            "allow_methods": ["GET", "POST"],
            "allow_headers": ["*"],
        }

    def get_sentry_config(self) -> Dict[str, Any]:
        return {
            "enabled": self.sentry_enabled,
            "dsn": self.sentry_dsn,
            "environment": self.sentry_environment,
            "traces_sample_rate": self.sentry_traces_sample_rate,
            "release": f"{self.app_name}@{self.app_version}",
        }

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Build the ``logging.config.dictConfig`` dictionary.

        Application loggers log at ``log_level``; uvicorn's own loggers are
        kept at INFO. When ``log_file`` is set every logger also writes to it.
        """
        handler_names = ["console"]
        handlers: Dict[str, Dict[str, Any]] = {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": self.log_level,
                "stream": "ext://sys.stderr",
            },
        }
        if self.log_file:
            handler_names.append("file")
            handlers["file"] = {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "level": self.log_level,
                "filename": self.log_file,
                "encoding": "utf-8",
            }

        def logger_config(level: str) -> Dict[str, Any]:
            return {"handlers": list(handler_names), "level": level, "propagate": False}

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": self.log_format},
            },
            "handlers": handlers,
            "loggers": {
                "": logger_config(self.log_level),
                "app": logger_config(self.log_level),
                "uvicorn": logger_config("INFO"),
                "uvicorn.access": logger_config("INFO"),
            },
        }


settings = Settings()


def configure_logging():
    """Apply the logging configuration from the current settings."""
    import logging.config

    logging.config.dictConfig(settings.get_logging_config())

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured for {settings.app_name} v{settings.app_version} at {settings.log_level}")
    logger.info(
        f"Spool directory: {settings.get_temp_path()}, "
        f"read timeout: {settings.stream_read_timeout}s, "
        f"business validation: {'on' if settings.business_validation_enabled else 'off'}"
    )


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Re-read settings from the environment and reconfigure logging."""
    global settings
    settings = Settings()
    configure_logging()
    return settings

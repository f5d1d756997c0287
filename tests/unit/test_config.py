"""
Unit tests for configuration module.

Tests the configuration management and environment variable handling.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.config import Settings


class TestSettings:
    """Test suite for Settings configuration class."""

    def test_default_values(self):
        """Test that default configuration values are set correctly."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.app_name == "Transit Movements Validator"
            assert settings.app_version == "1.0.0"
            assert settings.debug is False
            assert settings.port == 9496
            assert settings.api_prefix == ""

            assert settings.stream_read_timeout == 20.0
            assert settings.stream_chunk_size == 64 * 1024
            assert settings.eager_schema_loading is False
            assert settings.business_validation_enabled is True
            assert settings.temp_dir == tempfile.gettempdir()

            assert settings.sentry_enabled is False
            assert settings.sentry_dsn is None

    def test_environment_variable_override(self):
        """Test that environment variables override default values."""
        env_vars = {
            "APP_NAME": "Test Validator",
            "PORT": "9000",
            "DEBUG": "true",
            "API_PREFIX": "/transit-movements-validator",
            "STREAM_READ_TIMEOUT": "2.5",
            "STREAM_CHUNK_SIZE": "8192",
            "EAGER_SCHEMA_LOADING": "true",
            "BUSINESS_VALIDATION_ENABLED": "false",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.app_name == "Test Validator"
            assert settings.port == 9000
            assert settings.debug is True
            assert settings.api_prefix == "/transit-movements-validator"
            assert settings.stream_read_timeout == 2.5
            assert settings.stream_chunk_size == 8192
            assert settings.eager_schema_loading is True
            assert settings.business_validation_enabled is False

    @pytest.mark.parametrize("value,expected", [("debug", "DEBUG"), ("Warning", "WARNING"), ("ERROR", "ERROR")])
    def test_log_level_normalised(self, value, expected):
        assert Settings(_env_file=None, log_level=value).log_level == expected

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="VERBOSE")

    def test_read_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, stream_read_timeout=0)

    def test_temp_path_created(self, tmp_path):
        target = tmp_path / "nested" / "spool"
        settings = Settings(_env_file=None, temp_dir=str(target))

        assert settings.get_temp_path() == target
        assert target.is_dir()

    def test_cors_configuration(self):
        settings = Settings(_env_file=None, cors_origins="https://a.example, https://b.example")

        cors = settings.get_cors_config()

        assert cors["allow_origins"] == ["https://a.example", "https://b.example"]
        assert cors["allow_credentials"] is True

    def test_wildcard_cors_disables_credentials(self):
        cors = Settings(_env_file=None).get_cors_config()

        assert cors["allow_origins"] == ["*"]
        assert cors["allow_credentials"] is False

    def test_sentry_config(self):
        settings = Settings(_env_file=None, sentry_enabled=True, sentry_dsn="https://key@sentry.example/1")

        config = settings.get_sentry_config()

        assert config["enabled"] is True
        assert config["dsn"] == "https://key@sentry.example/1"
        assert config["release"] == "Transit Movements Validator@1.0.0"


class TestLoggingConfig:
    """Test suite for the logging dictConfig."""

    def test_console_only(self):
        config = Settings(_env_file=None, log_level="debug").get_logging_config()

        assert config["version"] == 1
        assert config["handlers"]["console"]["level"] == "DEBUG"
        assert "file" not in config["handlers"]
        assert config["loggers"][""]["handlers"] == ["console"]

    def test_file_handler(self, tmp_path):
        log_file = str(tmp_path / "validator.log")

        config = Settings(_env_file=None, log_file=log_file).get_logging_config()

        assert config["handlers"]["file"]["filename"] == log_file
        for logger_config in config["loggers"].values():
            assert "file" in logger_config["handlers"]

    def test_config_is_accepted_by_dictconfig(self, tmp_path):
        import logging.config

        config = Settings(_env_file=None, log_file=str(tmp_path / "validator.log")).get_logging_config()
        logging.config.dictConfig(config)

        assert Path(tmp_path / "validator.log").exists()

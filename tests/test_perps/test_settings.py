"""
Tests for perps/settings.py and perps/logging_setup.py.

Tests cover:
- get_log_level() / get_log_dir() / get_data_dir() from the environment
- .env loading never overriding explicit environment variables
- setup_logging() console and file handlers
"""

import logging
import os
import pytest
from pathlib import Path
from unittest.mock import patch

from perps import settings
from perps.logging_setup import LOG_FORMAT, setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PERPS_LOG_LEVEL", "PERPS_LOG_DIR", "PERPS_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for environment settings accessors."""

    def test_log_level_default(self):
        assert settings.get_log_level() == logging.INFO

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("PERPS_LOG_LEVEL", "debug")
        assert settings.get_log_level() == logging.DEBUG

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("PERPS_LOG_LEVEL", "chatty")
        with pytest.raises(ValueError, match="PERPS_LOG_LEVEL"):
            settings.get_log_level()

    def test_log_dir(self, monkeypatch, tmp_path):
        assert settings.get_log_dir() is None
        monkeypatch.setenv("PERPS_LOG_DIR", str(tmp_path))
        assert settings.get_log_dir() == tmp_path

    def test_data_dir(self, monkeypatch, tmp_path):
        assert settings.get_data_dir() == settings.PROJECT_ROOT / "data"
        monkeypatch.setenv("PERPS_DATA_DIR", str(tmp_path))
        assert settings.get_data_dir() == tmp_path

    def test_config_loaded_flag(self):
        settings.load_config()
        assert settings.is_config_loaded()

    def test_dotenv_does_not_override_env(self, monkeypatch, tmp_path):
        (tmp_path / ".env").write_text("PERPS_LOG_LEVEL=ERROR\nPERPS_DATA_DIR=/from/dotenv\n")
        monkeypatch.setenv("PERPS_LOG_LEVEL", "WARNING")

        try:
            with patch.object(settings, "PROJECT_ROOT", tmp_path):
                settings.load_config(force_reload=True)
                assert settings.get_log_level() == logging.WARNING
                assert settings.get_data_dir() == Path("/from/dotenv")
        finally:
            os.environ.pop("PERPS_DATA_DIR", None)


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("perps")
        handlers, level = list(logger.handlers), logger.level
        yield
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)

    def test_console_only(self):
        assert setup_logging(logging.DEBUG) is None
        logger = logging.getLogger("perps")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT

    def test_file_handler(self, tmp_path):
        log_file = setup_logging(logging.INFO, log_dir=tmp_path / "logs", name="geo")

        assert log_file.parent == tmp_path / "logs"
        assert log_file.name.startswith("geo_")
        logging.getLogger("perps.test").info("hello file")
        for handler in logging.getLogger("perps").handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(logging.INFO)
        setup_logging(logging.INFO)
        assert len(logging.getLogger("perps").handlers) == 1

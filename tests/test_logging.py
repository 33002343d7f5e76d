"""Tests for logging configuration"""
import tempfile
import os
import logging
from pathlib import Path
from unittest.mock import patch

from config import Config
from logging_config import (
    setup_structured_logging,
    get_logger,
    log_probe,
    log_server_startup,
    log_error
)


class TestLoggingConfig:
    """Test logging configuration and structured logging"""

    def test_setup_structured_logging(self):
        """Test structured logging setup"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = Path(tmp_dir) / "logs" / "test.log"

            config = Config(log_file=log_file, log_level="DEBUG")
            setup_structured_logging(config)

            assert log_file.parent.exists()
            assert logging.getLogger("test").isEnabledFor(logging.DEBUG)

            get_logger("test").info("Written to file")
            for handler in logging.getLogger().handlers:
                handler.flush()
            assert "Written to file" in log_file.read_text()

            for handler in list(logging.getLogger().handlers):
                handler.close()
                logging.getLogger().removeHandler(handler)

    def test_get_logger(self):
        """Test getting structured logger"""
        logger = get_logger("test_logger")

        assert logger is not None
        assert hasattr(logger, 'info')
        assert hasattr(logger, 'error')
        assert hasattr(logger, 'debug')
        assert hasattr(logger, 'warning')

    def test_log_probe(self):
        """Test structured probe logging"""
        logger = get_logger("test")

        # This should not raise an exception
        log_probe(logger, "http://localhost/data.json", samples_count=10, probe_time=0.5)
        log_probe(logger, "http://localhost/data.json", samples_count=5, probe_time=1.2, warnings=1)

    def test_log_server_startup(self):
        """Test structured server startup logging"""
        logger = get_logger("test")

        # This should not raise an exception
        log_server_startup(logger, Config(), metrics_count=3)

    def test_log_error(self):
        """Test structured error logging"""
        logger = get_logger("test")
        error = ValueError("Test error")

        # This should not raise an exception
        log_error(logger, error, {"component": "test", "target": "http://localhost"})
        log_error(logger, error)

    def test_development_vs_production_logging(self):
        """Test different logging configurations for development vs production"""
        config = Config()

        with patch.dict(os.environ, {"ENVIRONMENT": "development"}):
            setup_structured_logging(config)
            get_logger("test").info("Test development log")

        with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
            setup_structured_logging(config)
            get_logger("test").info("Test production log")

"""
Unit tests for LoggingManager.
"""

import logging

import pytest

from datemath.core.logging_manager import ColoredFormatter, LoggingManager


class TestLoggingManager:
    """Test suite for LoggingManager"""

    @pytest.fixture
    def manager(self):
        """Singleton manager, handlers removed afterwards"""
        manager = LoggingManager()
        yield manager
        package_logger = logging.getLogger(LoggingManager.ROOT_LOGGER_NAME)
        for handler in manager.handlers.values():
            package_logger.removeHandler(handler)
            handler.close()
        manager.handlers.clear()

    @pytest.mark.unit
    def test_singleton(self, manager):
        """Test that every construction returns the same manager"""
        assert LoggingManager() is manager

    @pytest.mark.unit
    def test_get_logger_is_cached(self):
        """Test logger lookup"""
        first = LoggingManager.get_logger("datemath.processors.lexer")

        assert first is LoggingManager.get_logger("datemath.processors.lexer")
        assert first.name == "datemath.processors.lexer"

    @pytest.mark.unit
    def test_configure_with_file(self, manager, tmp_path):
        """Test that configure installs console and file handlers"""
        log_file = tmp_path / "logs" / "datemath.log"
        manager.configure(level="INFO", log_file=log_file, colored=False)

        LoggingManager.get_logger("datemath.tests").info("evaluated now-1d")
        for handler in manager.handlers.values():
            handler.flush()

        assert set(manager.handlers) == {"console", "file"}
        assert "evaluated now-1d" in log_file.read_text()

    @pytest.mark.unit
    def test_reconfigure_replaces_handlers(self, manager):
        """Test that handlers are not stacked"""
        manager.configure(level="WARNING")
        manager.configure(level="DEBUG")

        package_logger = logging.getLogger(LoggingManager.ROOT_LOGGER_NAME)
        consoles = [handler for handler in package_logger.handlers
                    if handler is manager.handlers["console"]]
        assert len(consoles) == 1
        assert manager.handlers["console"].level == logging.DEBUG

    @pytest.mark.unit
    def test_set_log_level(self, manager):
        """Test level changes and invalid names"""
        manager.configure(level="WARNING")
        manager.set_log_level("error")

        assert manager.handlers["console"].level == logging.ERROR
        with pytest.raises(ValueError):
            manager.set_log_level("LOUD")

    @pytest.mark.unit
    def test_colored_formatter(self):
        """Test that records are wrapped in color codes"""
        record = logging.LogRecord("datemath", logging.ERROR, __file__, 1, "failed", None, None)

        output = ColoredFormatter("%(message)s").format(record)

        assert output == "\033[31mfailed\033[0m"

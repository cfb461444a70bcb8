"""
Unit tests for buildmanifest.core.logger module.
"""

import logging

import pytest

from buildmanifest.core.logger import (
    DEBUG_FORMAT,
    LOG_FORMAT,
    PACKAGE_NAME,
    get_logger,
    resolve_level,
    set_level,
)


@pytest.fixture(autouse=True)
def restore_level():
    """Restore the package log level after each test."""
    yield
    set_level(logging.WARNING)


class TestLogger:
    """Tests for the package logger."""

    def test_get_logger(self):
        """Test module loggers live under the package logger."""
        logger = get_logger("buildmanifest.core.manifest")

        assert logger.name == "buildmanifest.core.manifest"
        assert logger.parent.name.startswith(PACKAGE_NAME)

    def test_package_logger_configured(self):
        """Test the package logger has a handler and does not propagate."""
        get_logger(__name__)
        package_logger = logging.getLogger(PACKAGE_NAME)

        assert package_logger.handlers
        assert package_logger.propagate is False

    def test_set_level_name(self):
        """Test setting the level by name, case insensitively."""
        set_level("debug")

        assert logging.getLogger(PACKAGE_NAME).level == logging.DEBUG

    def test_set_level_int(self):
        """Test setting the level by number."""
        set_level(logging.INFO)

        assert logging.getLogger(PACKAGE_NAME).level == logging.INFO

    def test_set_level_unknown(self):
        """Test an unknown level name is rejected."""
        with pytest.raises(ValueError, match="Unknown logging level"):
            set_level("chatty")

    def test_resolve_level(self):
        """Test level names from the configuration resolve to numbers."""
        assert resolve_level("warning") == logging.WARNING
        assert resolve_level(" Info ") == logging.INFO
        assert resolve_level(logging.ERROR) == logging.ERROR

    def test_debug_adds_line_numbers(self):
        """Test DEBUG switches handlers to the format with line numbers."""
        set_level("DEBUG")
        handler = logging.getLogger(PACKAGE_NAME).handlers[0]
        assert handler.formatter._fmt == DEBUG_FORMAT

        set_level("WARNING")
        assert handler.formatter._fmt == LOG_FORMAT

    def test_records_reach_package_handler(self, mocker):
        """Test module records are handled by the package logger only."""
        set_level("DEBUG")
        handler = logging.getLogger(PACKAGE_NAME).handlers[0]
        emit = mocker.patch.object(handler, "emit")

        get_logger("buildmanifest.core.manifest.manifest").debug("Registered build pipeline build")

        assert emit.call_count == 1
        assert emit.call_args[0][0].getMessage() == "Registered build pipeline build"

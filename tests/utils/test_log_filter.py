"""Tests for logging filter utilities.

These tests verify the quiet_logger and suppress_logger_level context managers
used by the CLI to silence configuration loading and paramiko chatter.
"""

import logging

import pytest

from swarmdeploy.utils.log_filter import quiet_logger, suppress_logger_level


class TestQuietLogger:
    """Test the quiet_logger context manager."""

    def test_suppresses_info_messages(self, caplog):
        """Test that INFO messages are suppressed within context."""
        logger = logging.getLogger("TEST_LOGGER")

        with caplog.at_level(logging.INFO):
            logger.info("This should appear")

            with quiet_logger("TEST_LOGGER"):
                logger.info("This should be suppressed")

            logger.info("This should also appear")

        info_messages = [r.message for r in caplog.records if r.levelno == logging.INFO]
        assert info_messages == ["This should appear", "This should also appear"]

    def test_warnings_still_show_through(self, caplog):
        """Test that WARNING and ERROR messages still appear."""
        logger = logging.getLogger("TEST_LOGGER")

        with caplog.at_level(logging.WARNING):
            with quiet_logger("TEST_LOGGER"):
                logger.warning("Warning should show")
                logger.error("Error should show")

        assert len(caplog.records) == 2
        assert "Warning should show" in caplog.text
        assert "Error should show" in caplog.text

    def test_multiple_loggers_suppressed(self, caplog):
        """Test suppressing multiple loggers at once."""
        logger1 = logging.getLogger("LOGGER1")
        logger2 = logging.getLogger("LOGGER2")

        with caplog.at_level(logging.INFO):
            with quiet_logger(["LOGGER1", "LOGGER2"]):
                logger1.info("Suppressed 1")
                logger2.info("Suppressed 2")

        assert len(caplog.records) == 0

    def test_other_loggers_unaffected(self, caplog):
        target = logging.getLogger("TARGET")
        other = logging.getLogger("OTHER")

        with caplog.at_level(logging.INFO):
            with quiet_logger("TARGET"):
                target.info("Filtered")
                other.info("Not filtered")

        messages = [r.message for r in caplog.records]
        assert messages == ["Not filtered"]

    def test_level_restored_even_on_exception(self):
        """Test that the level is restored even if an exception occurs."""
        logger = logging.getLogger("TEST_LOGGER")
        logger.setLevel(logging.DEBUG)

        with pytest.raises(ValueError):
            with quiet_logger("TEST_LOGGER"):
                assert logger.level == logging.WARNING
                raise ValueError("Test exception")

        assert logger.level == logging.DEBUG
        logger.setLevel(logging.NOTSET)


class TestSuppressLoggerLevel:
    def test_yields_original_levels(self):
        logging.getLogger("LEVEL_A").setLevel(logging.INFO)
        logging.getLogger("LEVEL_B").setLevel(logging.NOTSET)

        with suppress_logger_level(["LEVEL_A", "LEVEL_B"], logging.ERROR) as original:
            assert original == {"LEVEL_A": logging.INFO, "LEVEL_B": logging.NOTSET}
            assert logging.getLogger("LEVEL_A").level == logging.ERROR
            assert logging.getLogger("LEVEL_B").level == logging.ERROR

        assert logging.getLogger("LEVEL_A").level == logging.INFO
        assert logging.getLogger("LEVEL_B").level == logging.NOTSET
        logging.getLogger("LEVEL_A").setLevel(logging.NOTSET)

    def test_only_errors_pass(self, caplog):
        logger = logging.getLogger("paramiko.transport")

        with caplog.at_level(logging.DEBUG):
            with suppress_logger_level("paramiko.transport", logging.ERROR):
                logger.warning("Dropped")
                logger.error("Kept")

        assert [r.message for r in caplog.records] == ["Kept"]

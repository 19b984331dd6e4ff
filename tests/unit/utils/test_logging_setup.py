"""
Unit tests for logging config.
"""

import logging

import pytest

from citeguard.utils.logging_config import (
    NOISY_LOGGERS,
    ROOT_LOGGER,
    ColoredFormatter,
    LogLevel,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test setup_logging function."""

    def test_setup_logging_normal(self):
        logger = setup_logging(level=LogLevel.NORMAL)

        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_setup_logging_minimal(self):
        logger = setup_logging(level=LogLevel.MINIMAL)
        assert logger.level == logging.WARNING

    def test_level_accepts_string_value(self):
        logger = setup_logging(level="detailed")
        assert logger.level == logging.DEBUG

    def test_client_library_loggers_are_quieted(self):
        setup_logging(level=LogLevel.NORMAL)
        assert logging.getLogger("aiohttp").level == logging.WARNING
        setup_logging(level=LogLevel.DETAILED)
        assert logging.getLogger("aiohttp").level == logging.DEBUG

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        logger = setup_logging(level=LogLevel.MINIMAL, log_file=log_file)
        get_logger("repair.engine").debug("file only")
        for handler in logger.handlers:
            handler.flush()

        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert "file only" in log_file.read_text(encoding="utf-8")


class TestGetLogger:
    """Test get_logger function."""

    def test_children_of_package_logger(self):
        assert get_logger("repair").name == "citeguard.repair"
        assert get_logger("citeguard.repair.engine").name == "citeguard.repair.engine"
        assert get_logger(ROOT_LOGGER).name == ROOT_LOGGER


def test_colored_formatter_restores_levelname():
    record = logging.LogRecord("citeguard", logging.WARNING, __file__, 1, "careful", None, None)
    output = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "WARNING" in output
    assert output.endswith("careful")
    assert record.levelname == "WARNING"

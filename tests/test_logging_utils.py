"""Tests for compounder logging helpers."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from compounder.logging_utils import add_rotating_handler, configure_logging, has_rotating_handler


@pytest.fixture
def isolated_logger():
    logger = logging.getLogger("compounder_test_isolated")
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestLoggingUtils:
    """Tests for rotating file handler setup."""

    def test_add_rotating_handler(self, isolated_logger, temp_dir):
        handler = add_rotating_handler(isolated_logger, "test.log", log_dir=temp_dir)

        assert isinstance(handler, RotatingFileHandler)
        assert (temp_dir / "test.log").exists()
        assert has_rotating_handler(isolated_logger, "test.log")
        assert not has_rotating_handler(isolated_logger, "other.log")

    def test_configure_logging_is_idempotent(self, isolated_logger, temp_dir):
        first = configure_logging(namespace=isolated_logger.name, prefix="cmp", log_dir=temp_dir)
        second = configure_logging(namespace=isolated_logger.name, prefix="cmp", log_dir=temp_dir)

        assert len(first) == 2
        assert second == []
        assert (temp_dir / "cmp.log").exists()
        assert (temp_dir / "cmp_errors.log").exists()

    def test_console_only(self, isolated_logger):
        assert configure_logging(namespace=isolated_logger.name, log_dir=None) == []
        assert isolated_logger.handlers == []

"""Tests for structlog configuration."""

import logging
from typing import Generator

import pytest
import structlog

from graphtutorial.core.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()
    logging.getLogger().setLevel(logging.WARNING)


def test_loggers_cached_by_default() -> None:
    configure_logging()

    assert structlog.get_config()["cache_logger_on_first_use"] is True


def test_reconfigure_reaches_loggers_already_used() -> None:
    configure_logging("INFO", json_output=False, cache_loggers=False)
    logger = get_logger("graphtutorial.test")
    logger.info("console_event")

    configure_logging("DEBUG", json_output=True, cache_loggers=False)

    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
    assert isinstance(logger.bind()._processors[-1], structlog.processors.JSONRenderer)
    assert logging.getLogger().isEnabledFor(logging.DEBUG)

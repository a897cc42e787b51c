"""Tests for logging setup."""

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from cc_archive.logging_config import setup_logging


@pytest.fixture
def root_logger():
    logger = logging.getLogger()
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def test_setup_logging_installs_single_rich_handler(root_logger):
    setup_logging("DEBUG")
    setup_logging("DEBUG")

    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0], RichHandler)


def test_setup_logging_writes_to_given_console(root_logger):
    buffer = io.StringIO()
    setup_logging("INFO", console=Console(file=buffer, width=120))

    logging.getLogger("cc_archive.test").info("index ready")
    logging.getLogger("cc_archive.test").debug("hidden detail")

    assert "index ready" in buffer.getvalue()
    assert "hidden detail" not in buffer.getvalue()


def test_unknown_level_falls_back_to_warning(root_logger):
    setup_logging("chatty")
    assert root_logger.level == logging.WARNING

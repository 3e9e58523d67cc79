"""Tests for setup_logging: root handler, level and renderer selection."""

import logging
from collections.abc import Iterator

import pytest
import structlog

from btcbot.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _renderer() -> structlog.types.Processor:
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
    return handler.formatter.processors[-1]


class TestSetupLogging:
    def test_json_format_uses_json_renderer(self) -> None:
        setup_logging("DEBUG", "JSON")
        assert isinstance(_renderer(), structlog.processors.JSONRenderer)
        assert logging.getLogger().level == logging.DEBUG

    def test_console_is_the_fallback(self) -> None:
        setup_logging("INFO", "plain")
        assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_noisy_libraries_capped_at_warning(self) -> None:
        setup_logging("DEBUG")
        assert logging.getLogger("ccxt").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING

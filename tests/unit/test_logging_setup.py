"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

from kamino_liquidator.logging_setup import LOG_FORMAT, configure_logging


class TestConfigureLogging:
    def test_sets_info_level(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_sets_debug_level(self) -> None:
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_silences_third_party(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("aiohttp").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_invalid_level_defaults_to_info(self) -> None:
        configure_logging("NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging("INFO")
        configure_logging("WARNING")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

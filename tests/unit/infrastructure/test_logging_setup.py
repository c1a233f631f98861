from __future__ import annotations

import io
import json
import logging
from unittest.mock import patch

import pytest
import structlog

from curatarr.infrastructure.config.schema import AppConfig
from curatarr.infrastructure.logging import setup
from curatarr.infrastructure.logging.setup import (
    configure_logging,
    logger_levels,
    shutdown_logging,
)


class TestLoggerLevels:
    def test_project_logger_follows_config(self) -> None:
        levels = logger_levels(AppConfig(log_level="WARNING"))
        assert levels["curatarr"] == "WARNING"

    def test_parser_libraries_quiet_by_default(self) -> None:
        levels = logger_levels(AppConfig())
        assert levels["guessit"] == "WARNING"
        assert levels["rebulk"] == "WARNING"

    def test_debug_opens_parser_libraries(self) -> None:
        levels = logger_levels(AppConfig(log_level="DEBUG"))
        assert levels == {"curatarr": "DEBUG", "guessit": "DEBUG", "rebulk": "DEBUG"}


class TestConfigureLogging:
    def test_explicit_stream_receives_every_level(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        buffer = io.StringIO()
        configure_logging(AppConfig(log_format="json"), stream=buffer)
        log = structlog.get_logger("curatarr.tests")
        log.info("routine_event", n=1)
        log.error("broken_event")
        shutdown_logging()

        events = [json.loads(line)["event"] for line in buffer.getvalue().splitlines()]
        assert events == ["logging_configured", "routine_event", "broken_event"]
        captured = capsys.readouterr()
        assert "routine_event" not in captured.out
        assert "broken_event" not in captured.err

    def test_shutdown_detaches_the_queue(self) -> None:
        configure_logging(AppConfig(log_format="json"), stream=io.StringIO())
        emitter = setup._emitter
        assert emitter is not None
        shutdown_logging()
        assert setup._emitter is None
        assert emitter.handler not in logging.getLogger().handlers

    def test_exit_hook_is_registered_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(setup, "_atexit_registered", False)
        with patch.object(setup.atexit, "register") as register:
            configure_logging(AppConfig(log_format="json"), stream=io.StringIO())
            configure_logging(AppConfig(log_format="json"), stream=io.StringIO())
        shutdown_logging()
        register.assert_called_once_with(shutdown_logging)

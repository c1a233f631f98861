"""structlog configuration with queue-based emission."""

from __future__ import annotations

import atexit
import copy
import logging
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional, TextIO

import structlog

from curatarr.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# guessit/rebulk trace every rule match at DEBUG
_NOISY_LIBRARIES = ("rebulk", "guessit")


def logger_levels(config: AppConfig) -> dict[str, str]:
    """Levels applied per named logger; the root gets ``config.log_level``."""
    levels = {"curatarr": config.log_level}
    noisy = "DEBUG" if config.log_level == "DEBUG" else "WARNING"
    levels.update({name: noisy for name in _NOISY_LIBRARIES})
    return levels


def _stamp_from_record(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Records from plain stdlib loggers carry their creation time in
    # ``_record``; use it rather than the time the listener thread renders.
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = stamp.isoformat().replace("+00:00", "Z")
    return event_dict


def _formatter(config: AppConfig) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.typing.Processor
    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            _stamp_from_record,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


class _BelowError(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


class _EventDictQueueHandler(QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The base class flattens record.msg to a string; ProcessorFormatter
        # needs the structlog event dict still in place.
        return copy.copy(record)


class _Emitter:
    """Owns the background listener that writes queued records.

    Without a stream, records below ERROR go to stdout and the rest to
    stderr. With one, every record goes to that stream.
    """

    def __init__(self, config: AppConfig, stream: Optional[TextIO] = None) -> None:
        formatter = _formatter(config)
        handlers: list[logging.Handler] = []

        if stream is not None:
            single = logging.StreamHandler(stream=stream)
            single.setFormatter(formatter)
            handlers.append(single)
        else:
            out = logging.StreamHandler(stream=sys.stdout)
            out.setFormatter(formatter)
            out.addFilter(_BelowError())

            err = logging.StreamHandler(stream=sys.stderr)
            err.setFormatter(formatter)
            err.setLevel(logging.ERROR)
            handlers += [out, err]

        self.queue: queue.Queue[logging.LogRecord] = queue.Queue()
        self.handler = _EventDictQueueHandler(self.queue)
        self._listener = QueueListener(self.queue, *handlers, respect_handler_level=True)

    def start(self) -> None:
        self._listener.start()

    def stop(self) -> None:
        # QueueListener.stop drains what is already queued before joining.
        self._listener.stop()


_emitter: Optional[_Emitter] = None
_atexit_registered = False


def shutdown_logging() -> None:
    """Write out queued records and detach the queue from the root logger."""
    global _emitter
    if _emitter is not None:
        try:
            logging.getLogger().removeHandler(_emitter.handler)
            _emitter.stop()
        finally:
            _emitter = None


def configure_logging(
    config: AppConfig, *, stream: Optional[TextIO] = None
) -> dict[str, str]:
    """
    Configure structlog and route every stdlib record through one queue.

    Callers (including the asyncio loop) only enqueue; a listener thread
    renders and writes. Pass ``stream`` to send every record there, as the
    CLI does with stderr so that command output owns stdout. Calling again
    replaces the previous listener. Returns the per-logger levels that
    were applied.
    """
    global _emitter, _atexit_registered

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    shutdown_logging()
    _emitter = _Emitter(config, stream)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_emitter.handler)
    root.setLevel(config.log_level)

    # Loggers created before this call may own handlers; funnel them into root.
    for name in list(logging.root.manager.loggerDict):
        existing = logging.getLogger(name)
        existing.handlers.clear()
        existing.propagate = True

    levels = logger_levels(config)
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)

    _emitter.start()
    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True

    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return levels

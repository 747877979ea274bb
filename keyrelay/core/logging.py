"""Logging setup for keyrelay.

Library modules only call ``logging.getLogger(__name__)``. Applications (the
CLI, or an embedding service) call ``configure_root_logging`` once.
"""

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)


def parse_log_level(raw: str | None) -> str:
    """Extract the first word of ``raw`` as a level name, falling back to INFO."""
    if not raw or not raw.split():
        return "INFO"
    level = raw.split()[0].upper()
    return level if level in VALID_LEVELS else "INFO"


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Let httpx/httpcore chatter through only when running at DEBUG."""
    noisy_level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for logger_name in NOISY_HTTP_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


_correlation_id: ContextVar[str | None] = ContextVar("keyrelay_correlation_id", default=None)
_factory_lock = threading.Lock()
_factory_installed = False


def _install_record_factory() -> None:
    """Install (once) a record factory that copies the current correlation id."""
    global _factory_installed
    with _factory_lock:
        if _factory_installed:
            return
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            correlation_id = _correlation_id.get()
            if correlation_id is not None:
                record.correlation_id = correlation_id
            return record

        logging.setLogRecordFactory(record_factory)
        _factory_installed = True


def current_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_context(request_id: str) -> Generator[None, None, None]:
    """Tag every log record emitted inside the block with ``request_id``.

    The id lives in a context variable, so concurrent asyncio tasks each see
    their own.
    """
    _install_record_factory()
    token = _correlation_id.set(request_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


class CorrelationFormatter(logging.Formatter):
    """Prefix messages with the first 8 chars of the correlation id, if any."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            original = record.msg
            record.msg = f"[{correlation_id[:8]}] {record.msg}"
            try:
                return super().format(record)
            finally:
                record.msg = original
        return super().format(record)


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Relabel INFO records from the given logger prefixes as DEBUG. Never drops a record."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO and record.name.startswith(self.prefixes):
            record.levelno = logging.DEBUG
            record.levelname = "DEBUG"
        return True


def configure_root_logging(level: str | None = None) -> logging.Handler:
    """Install a single stream handler on the root logger.

    Args:
        level: Level name; defaults to the configured LOG_LEVEL.

    Returns:
        The installed handler (useful for tests).
    """
    if level is None:
        from keyrelay.core.config import config

        level = config.log_level
    log_level = parse_log_level(level)

    handler = logging.StreamHandler()
    handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    handler.setFormatter(
        CorrelationFormatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s", datefmt="%H:%M:%S"
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level))

    set_noisy_http_logger_levels(log_level)
    return handler

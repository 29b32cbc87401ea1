from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False
_HANDLER_TARGET: str | None = None


def _build_handler(filename: str | Path | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(str(filename), encoding="utf-8")
    return logging.StreamHandler(sys.stdout)


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the context_doc package.

    The first call installs the structlog processor chain. Later calls with a
    different ``filename`` only swap the stdlib handler, so the per-source report
    can be redirected to a log file after the CLI has parsed its options.

    Args:
        filename: Optional path to a log file. If None, logs are written to stdout.

    Raises:
        OSError: if the log file cannot be opened; the current handler is kept.

    Returns:
        A structlog logger instance configured for the context_doc package.
    """
    global _LOGGING_CONFIGURED, _HANDLER_TARGET  # noqa: PLW0603
    target = str(filename) if filename else None
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            handlers=[_build_handler(filename)],
            format="%(message)s",
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True
        _HANDLER_TARGET = target
    elif target != _HANDLER_TARGET:
        handler = _build_handler(filename)
        root = logging.getLogger()
        for old in list(root.handlers):
            root.removeHandler(old)
            old.close()
        root.addHandler(handler)
        _HANDLER_TARGET = target

    return structlog.get_logger("context_doc")


logger = setup_logging()

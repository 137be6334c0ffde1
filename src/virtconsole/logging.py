"""
Structured logging for VirtConsole using structlog.

While the tree view is on screen it owns the terminal, so the CLI logs to a
file only. Every record written during a session carries its datacenter and
backend name through structlog's context variables.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_SHARED_PROCESSORS,
    )


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> None:
    """
    Configure structured logging for VirtConsole.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Render stderr records as JSON instead of colored text
        log_file: Append JSON records to this file, creating its directory
        console_output: Also write to stderr. Off for interactive sessions.

    With neither output enabled, records are dropped.
    """
    structlog.configure(
        processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []

    if console_output:
        if json_output:
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(_formatter(renderer))
        handlers.append(stream_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True,
    )


def get_logger(name: str = "virtconsole") -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def session_context(**values):
    """Bind ``values`` to every record logged inside the block."""
    structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*values)


@contextmanager
def log_operation(logger: structlog.stdlib.BoundLogger, operation: str, **kwargs):
    """
    Log the start, duration and outcome of one operation.

    Usage:
        with log_operation(log, "dispatch", command="power"):
            ...

    Exceptions are logged with their type and re-raised.
    """
    bound = logger.bind(operation=operation, **kwargs)
    started = datetime.now()
    bound.debug(f"{operation}.started")

    def elapsed_ms() -> float:
        return round((datetime.now() - started).total_seconds() * 1000, 2)

    try:
        yield bound
    except Exception as e:
        bound.error(
            f"{operation}.failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=elapsed_ms(),
        )
        raise
    bound.info(f"{operation}.completed", duration_ms=elapsed_ms())

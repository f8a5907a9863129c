"""Run-scoped logging: every record carries the correlation ID of its sync run."""

import logging
import sys
import uuid
from contextvars import ContextVar

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Loggers of the HTTP stack beneath DirectusClient
HTTP_LOGGERS = ("httpx", "httpcore")


def get_correlation_id() -> str:
    """
    Return the run's correlation ID, creating one on first use.

    Returns:
        Correlation ID string (UUID4)
    """
    corr_id = correlation_id_var.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        correlation_id_var.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """Bind a run's correlation ID to the current context."""
    correlation_id_var.set(corr_id)


class CorrelationIDFilter(logging.Filter):
    """Stamp records with the correlation ID so audit files and logs can be joined."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()  # type: ignore[attr-defined]
        return True


def configure_logging(level: int = logging.INFO, verbose: bool = False) -> None:
    """
    Route log records to stderr in key=value form.

    stdout is left to command output (tables, ``--json`` documents).

    Args:
        level: Root logging level
        verbose: Show one INFO line per Directus HTTP request; otherwise
            the HTTP stack only reports warnings
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s correlation_id=%(correlation_id)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    handler.addFilter(CorrelationIDFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    http_level = logging.INFO if verbose else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

"""Logging setup: correlation IDs plus structured context fields."""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import TextIO

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Keys passed through ``extra={...}`` that are appended to the message as key=value.
CONTEXT_FIELDS = ("document_id", "stage", "batch_index", "node_id")

# Loggers of the HTTP and imaging stack, quiet unless verbose.
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.http2",
    "httpcore.connection",
    "PIL",
)


def get_correlation_id() -> str:
    """
    Get the current correlation ID, generating one on first use.

    Returns:
        Correlation ID string (UUID4)
    """
    corr_id = correlation_id_var.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        correlation_id_var.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    correlation_id_var.set(corr_id)


class CorrelationIDFilter(logging.Filter):
    """Adds ``correlation_id`` to every record, keeping one passed explicitly via ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()  # type: ignore[attr-defined]
        return True


class ContextFormatter(logging.Formatter):
    """Formatter appending the pipeline context fields present on a record."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        return f"{message} {context}" if context else message


def configure_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Install a single stream handler with correlation ID support.

    Args:
        level: Root logging level (default: INFO)
        verbose: If True, HTTP client and imaging logs are shown at INFO;
            otherwise they are demoted to WARNING
        stream: Destination stream (default: stdout)
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        ContextFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s correlation_id=%(correlation_id)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    handler.addFilter(CorrelationIDFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    noisy_level = logging.INFO if verbose else logging.WARNING
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)

import io
import logging

import pytest

from figmaflow.infrastructure.logging import (
    configure_logging,
    correlation_id_var,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    token = correlation_id_var.set(None)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    correlation_id_var.reset(token)


def test_correlation_id_is_generated_once():
    first = get_correlation_id()
    assert first
    assert get_correlation_id() == first


def test_records_carry_correlation_id_and_context():
    stream = io.StringIO()
    configure_logging(stream=stream)
    set_correlation_id("run-123")

    logging.getLogger("figmaflow.test").info(
        "Resolved images", extra={"document_id": "KEY", "stage": "images"}
    )

    line = stream.getvalue().strip()
    assert "correlation_id=run-123" in line
    assert line.endswith("Resolved images document_id=KEY stage=images")


def test_explicit_correlation_id_wins():
    stream = io.StringIO()
    configure_logging(stream=stream)
    set_correlation_id("ambient")

    logging.getLogger("figmaflow.test").info("hello", extra={"correlation_id": "explicit"})

    assert "correlation_id=explicit" in stream.getvalue()


def test_http_loggers_are_quiet_unless_verbose():
    configure_logging(stream=io.StringIO())
    assert logging.getLogger("httpx").level == logging.WARNING
    configure_logging(stream=io.StringIO(), verbose=True)
    assert logging.getLogger("httpx").level == logging.INFO

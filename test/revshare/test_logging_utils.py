from __future__ import annotations

import io
import json
import logging

import pytest
from rich.console import Console

from revshare.fanout import FleetUpgrader
from revshare.logging_utils import CallerContextFilter, StructuredJsonFormatter, bind_context, configure_logging
from revshare.models import CallerContext
from revshare.relay import RecordingRelay

PORTAL = "0x1000000000000000000000000000000000000001"
REMAINDER = "0x00000000000000000000000000000000000000bb"
SENDER = "0x0000000000000000000000000000000000001234"


def _record(message="Planned %s calls", args=(12,)):
    return logging.LogRecord("revshare.planner", logging.INFO, __file__, 1, message, args, None)


@pytest.fixture()
def package_logger():
    yield
    logger = logging.getLogger("revshare")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_formatter_includes_event_payload():
    record = _record()
    record.event = "plan"
    record.data = {"calls": 12}

    payload = json.loads(StructuredJsonFormatter().format(record))

    assert payload == {
        "level": "INFO",
        "logger": "revshare.planner",
        "message": "Planned 12 calls",
        "event": "plan",
        "data": {"calls": 12},
    }


def test_filter_stamps_the_bound_caller():
    context = CallerContext(sender=SENDER, correlation_id="run-1")
    context_filter = CallerContextFilter()

    with bind_context(context):
        record = _record()
        assert context_filter.filter(record)

    payload = json.loads(StructuredJsonFormatter().format(record))
    assert payload["correlationId"] == "run-1"
    assert payload["sender"] == SENDER


def test_binding_ends_with_the_block():
    context_filter = CallerContextFilter()
    with bind_context(CallerContext(correlation_id="outer")):
        with bind_context(CallerContext(correlation_id="inner")):
            pass
        inside = _record()
        context_filter.filter(inside)
    outside = _record()
    context_filter.filter(outside)

    assert inside.correlation_id == "outer"
    assert outside.correlation_id is None
    assert "correlationId" not in json.loads(StructuredJsonFormatter().format(outside))


def test_fleet_run_is_attributed_in_the_audit_file(tmp_path, planner, withdrawer, package_logger):
    log_file = tmp_path / "logs" / "audit.jsonl"
    console = Console(file=io.StringIO(), width=200)
    logger = configure_logging(log_file, console=console)

    upgrader = FleetUpgrader(planner, RecordingRelay())
    upgrader.deploy_and_enable(
        [PORTAL], [withdrawer], [REMAINDER], context=CallerContext(sender=SENDER, correlation_id="run-1")
    )
    logging.getLogger("revshare.fanout").info("after the run")
    for handler in logger.handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    dispatched = [line for line in lines if line.get("event") == "dispatched"]
    assert len(dispatched) == 1
    assert dispatched[0]["correlationId"] == "run-1"
    assert dispatched[0]["sender"] == SENDER
    assert dispatched[0]["data"] == {"mode": "deploy_and_enable_atomically", "domains": 1}
    assert all(line["correlationId"] == "run-1" for line in lines[:-1])
    assert "correlationId" not in lines[-1]
    assert "[run-1]" in console.file.getvalue()


def test_reconfiguring_replaces_handlers(tmp_path, package_logger):
    configure_logging(tmp_path / "first.jsonl")
    logger = configure_logging(tmp_path / "second.jsonl", level=logging.WARNING)

    assert len(logger.handlers) == 2
    assert logger.level == logging.WARNING
    assert all(
        any(isinstance(item, CallerContextFilter) for item in handler.filters) for handler in logger.handlers
    )

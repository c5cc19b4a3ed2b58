from __future__ import annotations

import json
import logging

import pytest
import structlog

from src.adblitz.logging import HANDLER_NAME, batch_context, configure_logging


@pytest.fixture
def configured(capsys):
    configure_logging()
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    structlog.reset_defaults()


def json_lines(capsys) -> list[dict]:
    err = capsys.readouterr().err
    return [json.loads(line) for line in err.splitlines() if line.startswith("{")]


def test_stdlib_extra_fields_and_batch_id_are_rendered(configured, capsys):
    with batch_context("batch_abc"):
        logging.getLogger("src.adblitz.services.job_service").info(
            "batch.task.completed", extra={"task_id": "task_s1", "backend": "Veo 3.1"}
        )
    logging.getLogger("src.adblitz.services.job_service").info("batch.idle")

    first, second = json_lines(capsys)
    assert first["event"] == "batch.task.completed"
    assert first["batch_id"] == "batch_abc"
    assert first["task_id"] == "task_s1"
    assert first["backend"] == "Veo 3.1"
    assert first["level"] == "info"
    assert first["logger"] == "src.adblitz.services.job_service"
    assert "batch_id" not in second


def test_structlog_events_share_the_json_stream(configured, capsys):
    with batch_context("batch_xyz"):
        structlog.get_logger("src.adblitz.api.batch_api").warning("batch.rejected", reason="unknown")

    (record,) = json_lines(capsys)
    assert record["event"] == "batch.rejected"
    assert record["reason"] == "unknown"
    assert record["batch_id"] == "batch_xyz"
    assert record["level"] == "warning"


def test_reconfiguring_does_not_duplicate_handlers(configured):
    configure_logging()

    names = [handler.get_name() for handler in logging.getLogger().handlers]
    assert names.count(HANDLER_NAME) == 1

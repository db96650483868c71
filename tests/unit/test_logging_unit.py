from __future__ import annotations

import io
import json
import logging

from notifylog.common.logging import JsonFormatter, configure_logging, get_logger
from notifylog.common.run_context import RunContext, get_run_context, set_run_context, update_run_context


def _record(msg: str, **extra) -> logging.LogRecord:
    rec = logging.LogRecord("schema_init", logging.INFO, __file__, 1, msg, None, None)
    if extra:
        rec.extra = extra
    return rec


def test_json_line_carries_run_context_and_extras():
    set_run_context(RunContext(run_id="abc", database="notification_log_db"))
    update_run_context(collection="push_records", step="ensure_index")

    line = JsonFormatter().format(_record("index_created", index="status_idx"))
    payload = json.loads(line)

    assert payload["msg"] == "index_created"
    assert payload["level"] == "INFO"
    assert payload["run_id"] == "abc"
    assert payload["database"] == "notification_log_db"
    assert payload["collection"] == "push_records"
    assert payload["step"] == "ensure_index"
    assert payload["index"] == "status_idx"


def test_update_outside_a_run_is_a_no_op():
    set_run_context(None)  # type: ignore[arg-type]
    update_run_context(collection="x")
    assert get_run_context() is None

    payload = json.loads(JsonFormatter().format(_record("mongo_close")))
    assert "run_id" not in payload


def test_configure_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    buf = io.StringIO()
    try:
        configure_logging("debug", stream=buf)
        configure_logging("info", stream=buf)
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

        set_run_context(None)  # type: ignore[arg-type]
        get_logger("mongo").info("mongo_connect", extra={"extra": {"uri": "mongodb://x"}})
        payload = json.loads(buf.getvalue().strip().splitlines()[-1])
        assert payload["logger"] == "mongo"
        assert payload["uri"] == "mongodb://x"
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

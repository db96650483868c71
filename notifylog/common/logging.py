from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from notifylog.common.run_context import get_run_context


def _run_fields() -> dict[str, Any]:
    ctx = get_run_context()
    if ctx is None:
        return {}
    return {k: v for k, v in asdict(ctx).items() if v is not None}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: record basics, the current run step, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_run_fields(),
        }
        payload.update(getattr(record, "extra", None) or {})
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        # Driver values (ObjectId, datetime) in extras fall back to str.
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level.upper())
    # A second call swaps the handler instead of duplicating output.
    root.handlers[:] = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

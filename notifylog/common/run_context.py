from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass, replace
from typing import Literal, Optional


Step = Literal[
    "connect",
    "ensure_collection",
    "ensure_index",
    "report",
]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    database: str
    collection: Optional[str] = None
    step: Optional[Step] = None


_ctx_var: contextvars.ContextVar[Optional[RunContext]] = contextvars.ContextVar(
    "notifylog_run_context",
    default=None,
)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def set_run_context(ctx: RunContext) -> None:
    _ctx_var.set(ctx)


def get_run_context() -> Optional[RunContext]:
    return _ctx_var.get()


def update_run_context(**changes) -> None:
    """Narrow the current context (e.g. to a collection); no-op outside a run."""
    ctx = _ctx_var.get()
    if ctx is not None:
        _ctx_var.set(replace(ctx, **changes))

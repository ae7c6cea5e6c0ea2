"""Run correlation ID management for tracing a single generation run."""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="")

phase_context_var: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "phase_context", default={}
)


def get_run_id() -> str:
    """Get the run ID bound to the current context."""
    return run_id_var.get("")


def generate_run_id() -> str:
    return uuid.uuid4().hex[:12]


def get_phase_context() -> dict[str, Any]:
    return phase_context_var.get({})


@contextmanager
def run_context(run_id: str | None = None, **fields: Any) -> Iterator[str]:
    """Bind a run ID (and optional fields) for the duration of the block.

    Yields:
        The run ID in effect inside the block.
    """
    resolved = run_id or generate_run_id()
    token_run = run_id_var.set(resolved)
    token_phase = phase_context_var.set({**get_phase_context(), **fields})
    try:
        yield resolved
    finally:
        run_id_var.reset(token_run)
        phase_context_var.reset(token_phase)


@contextmanager
def phase_context(**fields: Any) -> Iterator[None]:
    """Add fields such as ``phase`` or ``ledger_id`` to the log context."""
    token = phase_context_var.set({**get_phase_context(), **fields})
    try:
        yield
    finally:
        phase_context_var.reset(token)


def get_log_context() -> dict[str, Any]:
    """Return the fields every JSON log line should carry."""
    context: dict[str, Any] = {}
    run_id = get_run_id()
    if run_id:
        context["run_id"] = run_id
    context.update(get_phase_context())
    return context


__all__ = [
    "generate_run_id",
    "get_log_context",
    "get_phase_context",
    "get_run_id",
    "phase_context",
    "run_context",
]

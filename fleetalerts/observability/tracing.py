"""Aggregation pass correlation ids."""

import uuid
from contextvars import ContextVar
from typing import Any

import structlog

_pass_id: ContextVar[str] = ContextVar("pass_id", default="")


def generate_pass_id() -> str:
    """Generate a new pass ID."""
    return uuid.uuid4().hex[:12]


def get_pass_id() -> str:
    """Get the current pass ID, empty outside a pass."""
    return _pass_id.get()


class PassContext:
    """Bind a pass ID to the context and to structlog for one aggregation pass."""

    def __init__(self, pass_id: str | None = None):
        self._pass_id = pass_id or generate_pass_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = _pass_id.set(self._pass_id)
        structlog.contextvars.bind_contextvars(pass_id=self._pass_id)
        return self._pass_id

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _pass_id.reset(self._token)
            self._token = None
        previous = _pass_id.get()
        if previous:
            structlog.contextvars.bind_contextvars(pass_id=previous)
        else:
            structlog.contextvars.unbind_contextvars("pass_id")

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id(prefix: str = "scan") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def set_request_id(rid: str) -> None:
    _request_id_var.set(rid or "")


def get_request_id() -> str:
    return _request_id_var.get() or ""


def clear_request_id() -> None:
    _request_id_var.set("")


@contextmanager
def request_scope(rid: str | None = None) -> Iterator[str]:
    """Bind a request id for the duration of one scan lookup.

    An id already bound by the HTTP middleware is reused so log lines from the
    router and the resolvers share it.
    """
    existing = get_request_id()
    if existing and not rid:
        yield existing
        return
    token = _request_id_var.set(rid or new_request_id())
    try:
        yield _request_id_var.get()
    finally:
        _request_id_var.reset(token)

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_USER_ID_CTX: ContextVar[str | None] = ContextVar("user_id", default=None)


def set_request_context(*, request_id: str | None = None, user_id: str | None = None) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if user_id is not None:
        _USER_ID_CTX.set(user_id)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_user_id() -> str | None:
    return _USER_ID_CTX.get()


def current_context() -> dict[str, str | None]:
    return {"request_id": get_request_id(), "user_id": get_user_id()}


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _USER_ID_CTX.set(None)


@contextmanager
def request_scope(request_id: str) -> Iterator[None]:
    """Bind ``request_id`` while one request is handled, restoring the outer values afterwards.

    The user id starts empty; the auth dependency fills it once the session
    cookie has been checked.
    """
    request_token = _REQUEST_ID_CTX.set(request_id)
    user_token = _USER_ID_CTX.set(None)
    try:
        yield
    finally:
        _USER_ID_CTX.reset(user_token)
        _REQUEST_ID_CTX.reset(request_token)

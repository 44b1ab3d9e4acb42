"""Request-scoped context for log records."""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import Optional

_request_id: ContextVar[Optional[str]] = ContextVar("mock_request_id", default=None)


def set_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)

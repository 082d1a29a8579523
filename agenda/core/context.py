"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_user_id() -> str | None:
    """Return the user the current request is planning for, if known."""
    return user_id_ctx_var.get()


def bind_user_id(user_id: object) -> None:
    """Tag the rest of the request with the user named in a JSON body."""
    user_id_ctx_var.set(str(user_id))

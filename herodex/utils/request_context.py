"""Request identifier bookkeeping shared by middleware, handlers, and logging.

Every inbound request gets an identifier (taken from ``X-Request-ID`` when the
client supplies one). It lives in a ``ContextVar`` so any coroutine serving
the request can read it, and :class:`RequestIdLogFilter` stamps it onto log
records so a single page render can be traced across modules.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "RequestIdLogFilter",
    "get_request_id",
    "set_request_id",
]

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")


def set_request_id(request_id: str) -> Token[str]:
    """Store ``request_id`` for the current task.

    The returned token lets tests restore the previous value afterwards.
    """

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    """Return the active request identifier, or ``""`` outside a request."""

    return REQUEST_ID_CONTEXT.get()


class RequestIdLogFilter(logging.Filter):
    """Expose the active request id to formatters as ``%(request_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True

"""Request-scoped state via ContextVar.

Provides:
- ``request_var``: the current ``Request`` for this task.
- ``expire_cookie()``: ask for a cookie to be cleared on whatever
  response this request ends with, including error pages.

Both are set by the ASGI handler before dispatch and reset after the
response is built. ``ContextVar`` is task-local under asyncio, so
concurrent requests never see each other's state.
"""

from contextvars import ContextVar, Token

from warbler.http.cookies import SetCookie
from warbler.http.request import Request
from warbler.http.response import Response

request_var: ContextVar[Request] = ContextVar("warbler_request")
"""The current request. Set by the ASGI handler before dispatch."""

_expired_cookies_var: ContextVar[list[SetCookie] | None] = ContextVar(
    "warbler_expired_cookies", default=None
)


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def begin_cookie_expiry() -> Token[list[SetCookie] | None]:
    """Open a fresh expiry list for the current request; returns a reset token."""
    return _expired_cookies_var.set([])


def end_cookie_expiry(token: Token[list[SetCookie] | None]) -> None:
    _expired_cookies_var.reset(token)


def expire_cookie(name: str, path: str = "/") -> None:
    """Clear cookie *name* on the response this request ends with.

    Outside a request (no expiry list open) this is a no-op.
    """
    pending = _expired_cookies_var.get()
    if pending is not None:
        pending.append(SetCookie(name=name, value="", max_age=0, path=path))


def apply_expired_cookies(response: Response) -> Response:
    """Attach every pending cookie deletion to *response*."""
    pending = _expired_cookies_var.get()
    if not pending:
        return response
    for cookie in pending:
        response = response.without_cookie(cookie.name, path=cookie.path)
    return response

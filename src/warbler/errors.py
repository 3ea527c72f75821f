"""Warbler exception hierarchy.

Every warbler error carries an ``ErrorKind`` discriminant. The pipeline
decides what to do with a failure by looking at ``exc.kind``, not at the
exception's class, so wrappers and subclasses never change the outcome.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Failure taxonomy for the request pipeline and the supervisor."""

    AUTH_VERIFICATION = "auth_verification"
    ROUTE_RESOLUTION = "route_resolution"
    RENDERING = "rendering"
    EXTERNAL_PROVIDER = "external_provider"
    CONFIGURATION = "configuration"
    WORKER_CRASH = "worker_crash"
    HTTP = "http"


class WarblerError(Exception):
    """Base for all warbler-specific errors."""

    kind: ErrorKind = ErrorKind.RENDERING


class ConfigurationError(WarblerError):
    """Raised when app configuration is invalid.

    Unknown asset chunks, empty secrets, and unreadable manifests land
    here. These are process-level problems, never absorbed per request.
    """

    kind = ErrorKind.CONFIGURATION


class ProviderError(WarblerError):
    """An external identity provider handshake failed."""

    kind = ErrorKind.EXTERNAL_PROVIDER


class ResolutionError(WarblerError):
    """A route resolver raised or timed out while producing a descriptor."""

    kind = ErrorKind.ROUTE_RESOLUTION

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        if cause is not None:
            detail = f"{type(cause).__name__}: {describe_error(cause)}"
        else:
            detail = "no descriptor"
        super().__init__(f"Could not resolve {path!r} ({detail})")
        self.path = path
        self.cause = cause


class RenderingError(WarblerError):
    """A view failed while producing markup.

    The renderer raises it chained to the view's exception. ``status`` is
    the HTTP status the error page should carry.
    """

    kind = ErrorKind.RENDERING

    def __init__(self, message: str, *, status: int = 500) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True, slots=True)
class HTTPError(WarblerError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    kind = ErrorKind.HTTP

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


def error_kind(exc: BaseException) -> ErrorKind:
    """Return the discriminant for any exception.

    Foreign exceptions (anything not raised by warbler) count as
    rendering failures: they escaped a view or the document shell.
    """
    try:
        kind = getattr(exc, "kind", None)
    except Exception:
        return ErrorKind.RENDERING
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.RENDERING


def describe_error(exc: BaseException) -> str:
    """``str(exc)``, or the class name when that is empty or raises."""
    try:
        return str(exc) or type(exc).__name__
    except Exception:
        return type(exc).__name__

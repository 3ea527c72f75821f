"""Credential middleware — optional signed-cookie authentication.

Reads the credential token from a cookie, verifies it, and stores the
resulting identity in a ContextVar, accessible via ``get_identity()``
from any handler, page function, or template.

Authentication is optional at this layer. A request without a cookie
proceeds anonymously. A request whose cookie fails verification also
proceeds anonymously, and its response clears the cookie so the browser
stops sending it. Routes that need a caller use ``@requires_identity``.

Usage::

    from warbler.middleware.auth import CredentialConfig, CredentialMiddleware, get_identity
    from warbler.security.credentials import CredentialCodec

    app.add_middleware(CredentialMiddleware(CredentialCodec("s3cr3t")))

    # In a handler:
    identity = get_identity()
    if identity.is_authenticated:
        ...
"""

import functools
import logging
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ClassVar

from warbler._internal.invoke import invoke
from warbler.config import CREDENTIAL_TTL_SECONDS
from warbler.context import expire_cookie
from warbler.errors import ErrorKind, HTTPError, WarblerError
from warbler.http.request import Request
from warbler.http.response import Response
from warbler.middleware.protocol import Next
from warbler.security.audit import emit_security_event
from warbler.security.credentials import CredentialCodec, CredentialError

logger = logging.getLogger("warbler.auth")


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Identity:
    """The caller behind a request.

    ``claims`` is the payload signed at login, unchanged. Anonymous
    callers get the ``ANONYMOUS`` sentinel, so ``get_identity()`` never
    returns ``None``.
    """

    claims: Mapping[str, Any] = field(default_factory=dict)
    expires_at: int = 0
    is_authenticated: bool = False

    @property
    def id(self) -> str:
        value = self.claims.get("id", self.claims.get("sub", ""))
        return str(value) if value is not None else ""


ANONYMOUS: Identity = Identity()

_identity_var: ContextVar[Identity] = ContextVar("warbler_identity")


def get_identity() -> Identity:
    """Return the current identity (or ``ANONYMOUS``).

    Raises ``LookupError`` if called outside a request with
    ``CredentialMiddleware`` active.
    """
    try:
        return _identity_var.get()
    except LookupError:
        msg = (
            "No credential context. Ensure CredentialMiddleware is added "
            "to the app before reading the identity."
        )
        raise LookupError(msg) from None


def current_identity() -> Identity:
    """Template-friendly ``get_identity()``; never raises."""
    try:
        return _identity_var.get()
    except LookupError:
        return ANONYMOUS


def requires_identity(handler: Callable[..., Any]) -> Callable[..., Any]:
    """Reject anonymous callers with 401 before *handler* runs."""

    @functools.wraps(handler)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not current_identity().is_authenticated:
            raise HTTPError(status=401, detail="Authentication required")
        return await invoke(handler, *args, **kwargs)

    return wrapper


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CredentialConfig:
    """Credential cookie configuration.

    Attributes:
        cookie_name: Cookie holding the signed token.
        ttl: Token and cookie lifetime in seconds (180 days).
        path: Cookie path, used both when setting and clearing.
        secure: Mark the cookie ``Secure`` (HTTPS only).
        samesite: ``SameSite`` attribute.
    """

    cookie_name: str = "id_token"
    ttl: int = CREDENTIAL_TTL_SECONDS
    path: str = "/"
    secure: bool = False
    samesite: str = "lax"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class CredentialMiddleware:
    """Optional cookie-credential authentication.

    Never rejects a request. Verification failures are logged, emitted
    as ``auth.credential.invalid`` security events, and answered by
    clearing the cookie on the response.
    """

    __slots__ = ("_codec", "_config")

    # Template globals auto-registered by the app when this
    # middleware is present.
    template_globals: ClassVar[dict[str, Any]] = {
        "current_identity": current_identity,
    }

    def __init__(self, codec: CredentialCodec, config: CredentialConfig | None = None) -> None:
        self._codec = codec
        self._config = config or CredentialConfig()

    @property
    def config(self) -> CredentialConfig:
        return self._config

    def authenticate(self, request: Request) -> Identity:
        """Resolve the identity for *request* without touching the response."""
        token = request.cookies.get(self._config.cookie_name)
        if not token:
            return ANONYMOUS

        try:
            credential = self._codec.verify(token)
        except WarblerError as exc:
            if exc.kind is not ErrorKind.AUTH_VERIFICATION:
                raise
            reason = exc.reason.value if isinstance(exc, CredentialError) else "unverified"
            logger.warning(
                "credential rejected (%s) for %s %s",
                reason,
                request.method,
                request.path,
                extra={
                    "path": request.path,
                    "user_agent": request.user_agent,
                    "stage": "auth",
                },
            )
            emit_security_event(
                "auth.credential.invalid",
                request=request,
                details={"reason": reason},
            )
            expire_cookie(self._config.cookie_name, path=self._config.path)
            return ANONYMOUS

        return Identity(
            claims=credential.claims,
            expires_at=credential.expires_at,
            is_authenticated=True,
        )

    async def __call__(self, request: Request, next: Next) -> Response:
        """Authenticate the request, then dispatch."""
        token = _identity_var.set(self.authenticate(request))
        try:
            return await next(request)
        finally:
            _identity_var.reset(token)

"""Login callback — exchange an identity-provider handshake for a credential.

The provider flow itself (redirects, token exchange, profile lookup) is
an external collaborator behind ``IdentityProvider``. This module only
wires two routes per provider and turns the returned profile into a
signed ``id_token`` cookie.

Usage::

    mount_login(app, [FacebookProvider(...)], codec)

    # GET /login/facebook         -> 302 to the provider
    # GET /login/facebook/return  -> cookie + 302 to "/", or 302 to "/login"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from warbler._internal.invoke import invoke
from warbler.errors import ErrorKind, NotFound, ProviderError, describe_error, error_kind
from warbler.http.request import Request
from warbler.http.response import Redirect, Response
from warbler.middleware.auth import CredentialConfig
from warbler.security.audit import emit_security_event
from warbler.security.credentials import CredentialCodec

if TYPE_CHECKING:
    from warbler.app import App

logger = logging.getLogger("warbler.auth")


@runtime_checkable
class IdentityProvider(Protocol):
    """An external login flow (OAuth or similar)."""

    name: str

    def authorization_url(self, request: Request) -> str:
        """Where to send the browser to start the handshake."""
        ...

    async def complete(self, request: Request) -> Mapping[str, Any]:
        """Finish the handshake from the return request.

        Returns the provider-supplied profile, or raises ``ProviderError``.
        """
        ...


class LoginCallback:
    """The two login endpoints, shared by every registered provider."""

    __slots__ = ("_codec", "_config", "_failure_redirect", "_providers", "_success_redirect")

    def __init__(
        self,
        providers: Iterable[IdentityProvider],
        codec: CredentialCodec,
        config: CredentialConfig | None = None,
        *,
        failure_redirect: str = "/login",
        success_redirect: str = "/",
    ) -> None:
        self._providers = {provider.name: provider for provider in providers}
        self._codec = codec
        self._config = config or CredentialConfig()
        self._failure_redirect = failure_redirect
        self._success_redirect = success_redirect

    def _provider(self, name: str) -> IdentityProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise NotFound(f"Unknown login provider {name!r}")
        return provider

    async def start(self, request: Request, provider: str) -> Redirect:
        """``GET /login/{provider}`` — hand the browser to the provider."""
        target = self._provider(provider)
        return Redirect(await invoke(target.authorization_url, request))

    async def finish(self, request: Request, provider: str) -> Response:
        """``GET /login/{provider}/return`` — issue the credential or bounce.

        Never raises for provider failures: they are logged and answered
        with a redirect to the failure page.
        """
        target = self._provider(provider)
        try:
            profile = await target.complete(request)
            token = self._codec.issue(dict(profile), self._config.ttl)
        except Exception as exc:
            kind = error_kind(exc)
            if kind is not ErrorKind.EXTERNAL_PROVIDER:
                exc = ProviderError(f"{type(exc).__name__}: {describe_error(exc)}")
                kind = ErrorKind.EXTERNAL_PROVIDER
            logger.warning(
                "login via %s failed: %s",
                provider,
                exc,
                extra={
                    "path": request.path,
                    "user_agent": request.user_agent,
                    "stage": "login",
                    "kind": kind.value,
                },
            )
            emit_security_event(
                "auth.login.failed",
                request=request,
                details={"provider": provider, "error": describe_error(exc)},
            )
            return Redirect(self._failure_redirect).to_response()

        user_id = profile.get("id", profile.get("sub"))
        logger.info("login via %s succeeded for %s", provider, user_id)
        emit_security_event(
            "auth.login.succeeded",
            request=request,
            user_id=str(user_id) if user_id is not None else None,
            details={"provider": provider},
        )
        return (
            Redirect(self._success_redirect)
            .to_response()
            .with_cookie(
                self._config.cookie_name,
                token,
                max_age=self._config.ttl,
                path=self._config.path,
                secure=self._config.secure,
                httponly=True,
                samesite=self._config.samesite,
            )
        )


def mount_login(
    app: App,
    providers: Iterable[IdentityProvider],
    codec: CredentialCodec,
    config: CredentialConfig | None = None,
    *,
    failure_redirect: str = "/login",
    success_redirect: str = "/",
) -> LoginCallback:
    """Register ``/login/{provider}`` and ``/login/{provider}/return`` on *app*."""
    callback = LoginCallback(
        providers,
        codec,
        config,
        failure_redirect=failure_redirect,
        success_redirect=success_redirect,
    )
    app.route("/login/{provider}", name="login")(callback.start)
    app.route("/login/{provider}/return", name="login_return")(callback.finish)
    return callback

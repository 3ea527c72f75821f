"""Render context — the environment handed to resolvers and views.

A fresh ``RenderContext`` is built for every page request and dropped
when the response is sent. It carries what a view may need while it
renders: the request data, the caller's identity, the mobile flag, a
``Fetcher`` that calls the API on the caller's behalf, and the
``insert_css`` collector.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx

from warbler.http.headers import Headers
from warbler.http.query import QueryParams
from warbler.http.request import Request
from warbler.middleware.auth import ANONYMOUS, Identity
from warbler.pages.styles import StyleSet

_MOBILE_AGENT = re.compile(r"iphone|ipod|ipad|android", re.IGNORECASE)


def is_mobile_agent(user_agent: str | None) -> bool:
    """True for iPhone, iPod, iPad and Android user agents."""
    if not user_agent:
        return False
    return _MOBILE_AGENT.search(user_agent) is not None


class Fetcher:
    """HTTP client bound to one caller.

    Relative URLs (``/graphql``, ``/api/...``) are resolved against the
    API base URL and carry the caller's ``Cookie`` header, so server-side
    data loading sees the same session the browser would. Absolute URLs
    go out unchanged and without the cookie.

    Usage::

        response = await context.fetch("/graphql", method="POST", json={"query": q})
        data = response.json()
    """

    __slots__ = ("_base_url", "_client", "_cookie")

    def __init__(self, client: httpx.AsyncClient, *, base_url: str = "", cookie: str = "") -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._cookie = cookie

    @property
    def base_url(self) -> str:
        return self._base_url

    def resolve(self, url: str) -> str:
        if url.startswith("/"):
            return self._base_url + url
        return url

    async def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        outgoing = dict(headers or {})
        if url.startswith("/") and self._cookie:
            outgoing.setdefault("Cookie", self._cookie)
        return await self._client.request(method, self.resolve(url), headers=outgoing, **kwargs)


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Everything one page render may read.

    Attributes:
        path: Request path.
        query: Parsed query string.
        headers: Request headers.
        cookie: Raw ``Cookie`` header, forwarded by ``fetch``.
        identity: Verified caller, or ``ANONYMOUS``.
        is_mobile: Computed once from the user agent.
        fetch: Caller-bound API client.
        styles: The request's style set.
        services: Shared per-process handles (API client libraries, etc.).
    """

    path: str
    query: QueryParams
    headers: Headers
    fetch: Fetcher
    cookie: str = ""
    identity: Identity = ANONYMOUS
    is_mobile: bool = False
    styles: StyleSet = field(default_factory=StyleSet)
    services: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent") or ""

    def insert_css(self, *fragments: str) -> None:
        """Add CSS text to this request's style set (each fragment once)."""
        self.styles.add(*fragments)

    @classmethod
    def from_request(
        cls,
        request: Request,
        *,
        client: httpx.AsyncClient,
        api_url: str = "",
        identity: Identity = ANONYMOUS,
        services: Mapping[str, Any] | None = None,
    ) -> RenderContext:
        cookie = request.headers.get("cookie") or ""
        return cls(
            path=request.path,
            query=request.query,
            headers=request.headers,
            cookie=cookie,
            identity=identity,
            is_mobile=is_mobile_agent(request.user_agent),
            fetch=Fetcher(client, base_url=api_url, cookie=cookie),
            services=MappingProxyType(dict(services or {})),
        )

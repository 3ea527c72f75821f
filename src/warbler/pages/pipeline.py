"""Page pipeline — resolve, then redirect or render and assemble.

Resolution failures are absorbed here: they are logged and replaced
by an empty placeholder so the client bundle can take over. Render and
assembly failures are not; they propagate to the ASGI handler, which
answers with the fallback error page.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from warbler.errors import ResolutionError
from warbler.http.request import Request
from warbler.http.response import HTML, Redirect, Response
from warbler.middleware.auth import current_identity
from warbler.pages.context import RenderContext
from warbler.pages.descriptor import RenderDescriptor
from warbler.pages.document import DocumentAssembler
from warbler.pages.renderer import render
from warbler.pages.resolver import Resolver

logger = logging.getLogger("warbler.pages")


class PagePipeline:
    """Serves every page request for one app.

    Args:
        resolver: Route resolver; swappable at runtime.
        assembler: Document assembler bound to the asset manifest.
        client: Returns the process-wide ``httpx.AsyncClient``.
        api_url: Base URL server-side fetches are resolved against.
        resolve_timeout: Seconds before a resolver is cancelled;
            ``None`` waits indefinitely.
        services: Shared handles exposed as ``context.services``.
    """

    __slots__ = ("_api_url", "_assembler", "_client", "_resolve_timeout", "_resolver", "_services")

    def __init__(
        self,
        resolver: Resolver,
        assembler: DocumentAssembler,
        *,
        client: Callable[[], httpx.AsyncClient],
        api_url: str = "",
        resolve_timeout: float | None = None,
        services: Mapping[str, Any] | None = None,
    ) -> None:
        self._resolver = resolver
        self._assembler = assembler
        self._client = client
        self._api_url = api_url
        self._resolve_timeout = resolve_timeout
        self._services = dict(services or {})

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    def swap_resolver(self, resolver: Resolver) -> Resolver:
        """Replace the live resolver; returns the previous one.

        Requests already resolving finish against the old resolver.
        """
        previous, self._resolver = self._resolver, resolver
        logger.info("resolver swapped: %r -> %r", previous, resolver)
        return previous

    def build_context(self, request: Request) -> RenderContext:
        return RenderContext.from_request(
            request,
            client=self._client(),
            api_url=self._api_url,
            identity=current_identity(),
            services=self._services,
        )

    async def resolve(self, context: RenderContext) -> RenderDescriptor:
        """Run the resolver; any failure becomes the placeholder descriptor."""
        resolver = self._resolver
        try:
            if self._resolve_timeout is not None:
                async with asyncio.timeout(self._resolve_timeout):
                    result = await resolver.resolve(context)
            else:
                result = await resolver.resolve(context)
            return RenderDescriptor.coerce(result)
        except Exception as exc:
            failure = ResolutionError(context.path, exc)
            logger.error(
                "%s",
                failure,
                exc_info=exc,
                extra={
                    "path": context.path,
                    "user_agent": context.user_agent,
                    "stage": "resolve",
                    "kind": failure.kind.value,
                },
            )
            return RenderDescriptor.placeholder()

    async def __call__(self, request: Request) -> Response:
        context = self.build_context(request)
        logger.debug(
            "page request",
            extra={"path": context.path, "user_agent": context.user_agent, "stage": "request"},
        )

        descriptor = await self.resolve(context)
        if descriptor.is_redirect:
            assert descriptor.redirect is not None
            return Redirect(descriptor.redirect, status=descriptor.redirect_status).to_response()

        rendered = render(descriptor, context)
        html = self._assembler.assemble(rendered, descriptor, context)
        return Response(body=html, status=descriptor.document_status, content_type=HTML)

"""Route resolvers — map a request path to a render descriptor.

``Resolver`` is the contract the page pipeline depends on. ``PageRouter``
is the default implementation: page functions registered by path, matched
with the same trie the app router uses.

Usage::

    pages = PageRouter()

    @pages.page("/", title="Home")
    def home(context):
        return TemplateView("<h1>Hello</h1>")

    @pages.page("/users/{id:int}", chunks=("users",))
    async def user(context, id):
        response = await context.fetch(f"/api/users/{id}")
        return Styled(UserCard(response.json()), USER_CSS)

    @pages.page("/old-home")
    def moved(context):
        return Redirect("/", status=301)
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Protocol, runtime_checkable

from warbler._internal.invoke import invoke
from warbler.errors import NotFound
from warbler.pages.context import RenderContext
from warbler.pages.descriptor import RenderDescriptor
from warbler.routing.route import Route
from warbler.routing.router import Router

type PageFunction = Callable[..., Any]


@runtime_checkable
class Resolver(Protocol):
    """Anything that can turn a render context into a descriptor."""

    async def resolve(self, context: RenderContext) -> RenderDescriptor: ...


class PageRouter:
    """Default resolver: path-pattern page functions.

    Page functions take the render context first, then path parameters
    by name (converted with the parameter's annotation when it has one).
    They may be sync or async and may return a ``RenderDescriptor``, a
    ``Redirect``, a ``View``, or a markup string.
    """

    __slots__ = ("_router", "_size")

    def __init__(self) -> None:
        self._router = Router()
        self._size = 0

    def page(
        self,
        path: str,
        *,
        chunks: tuple[str, ...] = (),
        title: str = "",
        description: str = "",
        name: str | None = None,
    ) -> Callable[[PageFunction], PageFunction]:
        """Register a page function via decorator."""

        def decorator(func: PageFunction) -> PageFunction:
            self.add(path, func, chunks=chunks, title=title, description=description, name=name)
            return func

        return decorator

    def add(
        self,
        path: str,
        func: PageFunction,
        *,
        chunks: tuple[str, ...] = (),
        title: str = "",
        description: str = "",
        name: str | None = None,
    ) -> None:
        self._router.add(
            Route(
                path=path,
                handler=func,
                methods=frozenset({"GET"}),
                name=name or getattr(func, "__name__", None),
                options={"chunks": tuple(chunks), "title": title, "description": description},
            )
        )
        self._size += 1

    @property
    def routes(self) -> list[Route]:
        return self._router.routes

    def __len__(self) -> int:
        return self._size

    async def resolve(self, context: RenderContext) -> RenderDescriptor:
        """Match ``context.path`` and run its page function.

        Raises ``NotFound`` when nothing matches.
        """
        match = self._router.match("GET", context.path)
        route = match.route
        kwargs = _page_kwargs(route.handler, match.path_params)
        result = await invoke(route.handler, context, **kwargs)
        if result is None:
            raise NotFound(f"Page {route.path!r} produced nothing for {context.path!r}")

        descriptor = RenderDescriptor.coerce(result, chunks=route.options["chunks"])
        if descriptor.is_redirect:
            return descriptor
        return replace(
            descriptor,
            title=descriptor.title or route.options["title"],
            description=descriptor.description or route.options["description"],
        )


def _page_kwargs(func: PageFunction, path_params: dict[str, str]) -> dict[str, Any]:
    """Path params the page function accepts, converted by annotation."""
    sig = inspect.signature(func, eval_str=True)
    kwargs: dict[str, Any] = {}
    for name, param in sig.parameters.items():
        if name not in path_params:
            continue
        value = path_params[name]
        if param.annotation is not inspect.Parameter.empty and param.annotation is not str:
            try:
                kwargs[name] = param.annotation(value)
            except (ValueError, TypeError):
                kwargs[name] = value
        else:
            kwargs[name] = value
    return kwargs

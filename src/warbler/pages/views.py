"""Views — opaque renderables for the page pipeline.

A view is anything with ``render(context) -> str``. The component
library behind it is not warbler's concern; these are the small set of
views the framework itself needs plus thin adapters for markup and kida
template strings.
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from kida import Environment

if TYPE_CHECKING:
    from warbler.pages.context import RenderContext

_default_env = Environment(autoescape=True)


@runtime_checkable
class View(Protocol):
    """Something that renders to markup for one request."""

    def render(self, context: RenderContext) -> str: ...


class HtmlView:
    """Pre-rendered markup, emitted as-is."""

    __slots__ = ("markup",)

    def __init__(self, markup: str) -> None:
        self.markup = markup

    def render(self, context: RenderContext) -> str:
        return self.markup

    def __repr__(self) -> str:
        return f"HtmlView({self.markup[:40]!r})"


class TemplateView:
    """A kida template string rendered with keyword context.

    The render context is available to the template as ``ctx``::

        TemplateView("<h1>{{ title }}</h1>{% if ctx.is_mobile %}<p>m</p>{% end %}",
                     title="Home")
    """

    __slots__ = ("context", "env", "source")

    def __init__(self, source: str, *, env: Environment | None = None, **context: Any) -> None:
        self.source = source
        self.env = env or _default_env
        self.context = context

    def render(self, context: RenderContext) -> str:
        template = self.env.from_string(self.source)
        return template.render({**self.context, "ctx": context})


class Styled:
    """Wrap a view with the CSS it depends on.

    The CSS is inserted into the request's style set before the inner
    view renders, so nested ``Styled`` views contribute in outside-in
    order and shared fragments land once.
    """

    __slots__ = ("css", "view")

    def __init__(self, view: View, *css: str) -> None:
        self.view = view
        self.css = css

    def render(self, context: RenderContext) -> str:
        context.insert_css(*self.css)
        return self.view.render(context)


class Placeholder:
    """Empty holder rendered when a route could not be resolved.

    The client bundle takes over and resolves the route in the browser.
    """

    __slots__ = ()

    def render(self, context: RenderContext) -> str:
        return '<div class="holder"></div>'


class ErrorView:
    """Body of the fallback error page.

    ``trace`` is only set in debug mode.
    """

    __slots__ = ("heading", "message", "trace")

    def __init__(self, message: str, *, heading: str = "Error", trace: str | None = None) -> None:
        self.heading = heading
        self.message = message
        self.trace = trace

    def render(self, context: RenderContext | None = None) -> str:
        parts = [
            '<div class="error-page">',
            f"<h1>{html.escape(self.heading)}</h1>",
            f"<p>{html.escape(self.message)}</p>",
        ]
        if self.trace:
            parts.append(f"<pre>{html.escape(self.trace)}</pre>")
        parts.append("</div>")
        return "".join(parts)

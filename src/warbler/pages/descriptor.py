"""Render descriptor — what a resolver says about one request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from warbler.http.response import Redirect
from warbler.pages.views import HtmlView, Placeholder, View


@dataclass(frozen=True, slots=True)
class RenderDescriptor:
    """The outcome of route resolution.

    Either ``redirect`` is set and nothing is rendered, or ``view`` is
    rendered into a full document.

    Attributes:
        view: Root view to render.
        status: Response status; 200 for documents and 302 for
            redirects when unset.
        redirect: Target URL; set means "redirect, do not render".
        chunks: Asset bundle names whose scripts the document needs,
            in load order.
        title: Document title.
        description: Document meta description.
    """

    view: View | None = None
    status: int | None = None
    redirect: str | None = None
    chunks: tuple[str, ...] = ()
    title: str = ""
    description: str = ""

    @property
    def is_redirect(self) -> bool:
        return bool(self.redirect)

    @property
    def redirect_status(self) -> int:
        return self.status or 302

    @property
    def document_status(self) -> int:
        return self.status or 200

    @classmethod
    def placeholder(cls) -> RenderDescriptor:
        """Descriptor used in place of a route that failed to resolve."""
        return cls(view=Placeholder())

    @classmethod
    def coerce(cls, value: Any, *, chunks: tuple[str, ...] = ()) -> RenderDescriptor:
        """Normalize a page function's return value.

        Accepts a descriptor, a ``Redirect``, a ``View``, or a markup
        string. ``chunks`` fills in when the value does not name its own.
        """
        match value:
            case RenderDescriptor():
                if chunks and not value.chunks:
                    return RenderDescriptor(
                        view=value.view,
                        status=value.status,
                        redirect=value.redirect,
                        chunks=chunks,
                        title=value.title,
                        description=value.description,
                    )
                return value
            case Redirect():
                return cls(redirect=value.url, status=value.status)
            case str():
                return cls(view=HtmlView(value), chunks=chunks)
            case View():
                return cls(view=value, chunks=chunks)
            case _:
                msg = f"Cannot render a page from {type(value).__name__}"
                raise TypeError(msg)

"""Renderer — turn a descriptor's view into markup plus collected CSS."""

from __future__ import annotations

from dataclasses import dataclass

from warbler.errors import RenderingError, WarblerError, describe_error
from warbler.pages.context import RenderContext
from warbler.pages.descriptor import RenderDescriptor
from warbler.pages.views import Placeholder


@dataclass(frozen=True, slots=True)
class Rendered:
    """Markup for ``<div id="app">`` and the CSS the views inserted."""

    markup: str
    styles: tuple[str, ...] = ()

    @property
    def css(self) -> str:
        return "".join(self.styles)


def _declared_status(exc: BaseException) -> int:
    try:
        status = getattr(exc, "status", 500)
    except Exception:
        return 500
    return status if isinstance(status, int) and not isinstance(status, bool) else 500


def render(descriptor: RenderDescriptor, context: RenderContext) -> Rendered:
    """Render *descriptor* for one request.

    Synchronous. A failing view raises ``RenderingError`` chained to the
    original exception and carrying its ``status``; warbler's own errors
    pass through unchanged. The caller owns the fallback page.
    """
    view = descriptor.view if descriptor.view is not None else Placeholder()
    try:
        markup = view.render(context)
    except WarblerError:
        raise
    except Exception as exc:
        raise RenderingError(describe_error(exc), status=_declared_status(exc)) from exc
    return Rendered(markup=markup, styles=tuple(context.styles))

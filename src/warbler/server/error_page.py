"""Fallback error page.

``render_error`` is the last stop for a failed page request. It renders
the error through the normal document shell with its own stylesheet,
and if even that fails it returns a fixed document. It never raises.
"""

from __future__ import annotations

import html
import logging
import os
import traceback as _traceback
from dataclasses import dataclass

from warbler.errors import RenderingError, describe_error
from warbler.pages.document import DOCTYPE, render_document
from warbler.pages.views import ErrorView

logger = logging.getLogger("warbler.server")

ERROR_TITLE = "Internal Server Error"

ERROR_CSS = (
    "html,body{margin:0;padding:0;height:100%}"
    "body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;"
    "color:#333;background:#fafafa}"
    ".error-page{max-width:40em;margin:0 auto;padding:4em 1.5em}"
    ".error-page h1{font-weight:400;font-size:2em;margin:0 0 .5em}"
    ".error-page p{line-height:1.5;margin:0 0 1em}"
    ".error-page pre{white-space:pre-wrap;font-size:.85em;background:#1a1b26;color:#c0caf5;"
    "padding:1em;overflow:auto}"
)

_STATIC_FALLBACK = (
    f"{DOCTYPE}<html lang=\"en\"><head><meta charset=\"utf-8\">"
    f"<title>{ERROR_TITLE}</title></head>"
    f"<body><h1>{ERROR_TITLE}</h1><p>Sorry, something went wrong.</p></body></html>"
)


@dataclass(frozen=True, slots=True)
class ErrorDocument:
    html: str
    status: int = 500


def error_status(exc: BaseException) -> int:
    """``exc.status`` when it is a 4xx/5xx code, else 500."""
    try:
        status = getattr(exc, "status", None)
    except Exception:
        return 500
    if isinstance(status, int) and not isinstance(status, bool) and 400 <= status <= 599:
        return status
    return 500


def _is_app_frame(filename: str) -> bool:
    if "site-packages" in filename or filename.startswith("<"):
        return False
    return not filename.startswith(os.path.dirname(os.__file__))


def format_compact_traceback(exc: BaseException) -> str:
    """Error summary plus at most five application frames.

    A wrapped view failure is shown through its cause. Template errors
    that know how to describe themselves (``format_compact``) are shown
    that way instead.
    """
    if isinstance(exc, RenderingError) and exc.__cause__ is not None:
        exc = exc.__cause__
    try:
        compact = getattr(exc, "format_compact", None)
        if callable(compact):
            return str(compact())
    except Exception:
        pass

    tb = exc.__traceback__
    frames = _traceback.extract_tb(tb) if tb else []
    display = [f for f in frames if _is_app_frame(f.filename)] or frames[-3:]

    parts = [f"{type(exc).__name__}: {describe_error(exc)}"]
    if display:
        parts.append("  Trace (app frames):")
        for frame in display[-5:]:
            parts.append(f"    {frame.filename}:{frame.lineno} in {frame.name}")
            if frame.line:
                parts.append(f"      {frame.line.strip()}")
    return "\n".join(parts)


def render_error(exc: BaseException, *, debug: bool = False) -> ErrorDocument:
    """Render the fallback document for *exc*."""
    status = error_status(exc)
    message = describe_error(exc)
    try:
        view = ErrorView(
            message,
            heading=ERROR_TITLE,
            trace=format_compact_traceback(exc) if debug else None,
        )
        body = render_document(
            markup=view.render(),
            title=ERROR_TITLE,
            description=message,
            css=ERROR_CSS,
        )
    except Exception:
        logger.exception("error page failed to render; using static fallback")
        return ErrorDocument(html=_STATIC_FALLBACK, status=status)
    return ErrorDocument(html=body, status=status)


def render_error_message(status: int, detail: str) -> str:
    """Small page for expected HTTP errors (404, 405, 401...)."""
    try:
        return render_document(
            markup=ErrorView(detail, heading=str(status)).render(),
            title=f"{status}",
            description=detail,
            css=ERROR_CSS,
        )
    except Exception:
        logger.exception("error page failed to render; using static fallback")
        return f"{DOCTYPE}<html><body><h1>{status}</h1><p>{html.escape(detail)}</p></body></html>"

"""Error handling pipeline for warbler requests.

Maps HTTPError exceptions and unexpected failures to Responses, using
registered error handlers first. Full-page requests fall back to the
error document; JSON clients get a JSON error body.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from warbler.errors import ErrorKind, HTTPError, RenderingError, describe_error, error_kind
from warbler.http.request import Request
from warbler.http.response import Response, json_response
from warbler.server.error_page import (
    ERROR_TITLE,
    error_status,
    format_compact_traceback,
    render_error,
    render_error_message,
)
from warbler.server.negotiation import negotiate

logger = logging.getLogger("warbler.server")


def wants_json(request: Request) -> bool:
    """True when the client asked for JSON rather than a page."""
    accept = request.headers.get("accept") or ""
    return "application/json" in accept and "text/html" not in accept


def _log_extra(request: Request, stage: str, kind: ErrorKind) -> dict[str, Any]:
    return {
        "path": request.path,
        "user_agent": request.user_agent,
        "stage": stage,
        "kind": kind.value,
    }


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: BaseException,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    return negotiate(result)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug(
        "%d %s %s: %s",
        exc.status,
        request.method,
        request.path,
        exc.detail,
        extra=_log_extra(request, "dispatch", exc.kind),
    )

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or f"Error {exc.status}"
    if wants_json(request):
        resp = json_response({"errors": [{"message": detail}]}, status=exc.status)
    else:
        resp = Response(body=render_error_message(exc.status, detail), status=exc.status)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle a failure that escaped the pipeline.

    Configuration problems are logged at CRITICAL; they will fail every
    request until an operator fixes them. Everything else is ERROR.
    """
    kind = error_kind(exc)
    level = logging.CRITICAL if kind is ErrorKind.CONFIGURATION else logging.ERROR
    stage = "configuration" if kind is ErrorKind.CONFIGURATION else "render"
    logger.log(
        level,
        "%d %s %s\n%s",
        error_status(exc),
        request.method,
        request.path,
        format_compact_traceback(exc),
        extra=_log_extra(request, stage, kind),
    )

    # Handlers registered for a view's own exception type see that exception
    handled: BaseException = exc
    handler = error_handlers.get(type(exc))
    if handler is None and isinstance(exc, RenderingError) and exc.__cause__ is not None:
        handler = error_handlers.get(type(exc.__cause__))
        if handler is not None:
            handled = exc.__cause__
    if handler is None:
        handler = error_handlers.get(500)
    if handler is not None:
        try:
            return await call_error_handler(handler, request, handled)
        except Exception:
            logger.exception("error handler for %s failed", type(exc).__name__)

    if wants_json(request):
        message = describe_error(exc) if debug else ERROR_TITLE
        return json_response({"errors": [{"message": message}]}, status=error_status(exc))

    document = render_error(exc, debug=debug)
    return Response(body=document.html, status=document.status)

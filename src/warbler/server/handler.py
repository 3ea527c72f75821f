"""ASGI handler — translates ASGI scope/messages to warbler types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through middleware and routing,
and sends the Response back through ASGI send().

Whatever happens inside the pipeline, exactly one response is sent:
failures are mapped by ``warbler.server.errors`` and cookie deletions
requested during the request are attached to that final response.
"""

import inspect
from collections.abc import Callable
from contextvars import Token
from typing import Any

from warbler._internal.asgi import Receive, Scope, Send
from warbler._internal.invoke import invoke
from warbler.context import (
    apply_expired_cookies,
    begin_cookie_expiry,
    end_cookie_expiry,
    request_var,
)
from warbler.errors import HTTPError
from warbler.http.request import Request
from warbler.http.response import Response
from warbler.middleware.protocol import Next
from warbler.routing.route import RouteMatch
from warbler.routing.router import Router
from warbler.server.errors import handle_http_error, handle_internal_error
from warbler.server.negotiation import negotiate
from warbler.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
    max_content_length: int | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    token: Token[Request] = request_var.set(request)
    expiry = begin_cookie_expiry()

    try:
        _check_content_length(request, max_content_length)

        async def dispatch(req: Request) -> Response:
            match = router.match(req.method, req.path)
            return await _invoke_handler(match, req)

        # Wrap middleware around the dispatch
        handler: Next = dispatch
        for mw in reversed(middleware):
            outer = handler

            async def make_next(req: Request, _mw: Any = mw, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    try:
        response = apply_expired_cookies(response)
    finally:
        end_cookie_expiry(expiry)
        request_var.reset(token)

    await send_response(response, send, head=request.method == "HEAD")


def _check_content_length(request: Request, limit: int | None) -> None:
    if limit is None:
        return
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise HTTPError(status=413, detail="Request body too large")


async def _invoke_handler(match: RouteMatch, request: Request) -> Response:
    """Call the matched route handler, converting path params and return value."""
    handler = match.route.handler
    request = request.with_path_params(match.path_params)
    kwargs = _build_handler_kwargs(handler, request, match.path_params)
    result = await invoke(handler, **kwargs)
    return negotiate(result)


def _build_handler_kwargs(
    handler: Callable[..., Any],
    request: Request,
    path_params: dict[str, str],
) -> dict[str, Any]:
    """Inspect handler signature and build kwargs from request + path params.

    1. ``request`` parameter (by name or ``Request`` annotation)
    2. Path parameters (by name, with type conversion)
    """
    sig = inspect.signature(handler, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in path_params:
            value = path_params[name]
            if param.annotation is not inspect.Parameter.empty:
                try:
                    kwargs[name] = param.annotation(value)
                except (ValueError, TypeError):
                    kwargs[name] = value
            else:
                kwargs[name] = value

    return kwargs

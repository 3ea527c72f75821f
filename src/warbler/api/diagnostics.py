"""Client diagnostics — browsers report their errors to the server log.

``POST /errorLog/record`` with a JSON or urlencoded body. The ``log``
field picks the level; the whole body is written as JSON to the
``warbler.client`` logger. The endpoint always answers ``200 OK`` so a
reporting failure can never cascade into the client.
"""

import json
import logging

from warbler.http.request import Request
from warbler.http.response import TEXT, Response

logger = logging.getLogger("warbler.client")

DIAGNOSTICS_PATH = "/errorLog/record"
DEFAULT_LEVEL = "warn"

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def resolve_level(name: object) -> int:
    """Logging level for *name*; anything unrecognised means ``warn``."""
    if isinstance(name, str):
        level = LEVELS.get(name.strip().lower())
        if level is not None:
            return level
    return LEVELS[DEFAULT_LEVEL]


async def record_client_error(request: Request) -> Response:
    """Log one client report and acknowledge it."""
    extra = {"path": request.path, "user_agent": request.user_agent, "stage": "client"}
    try:
        body = await request.payload()
    except (ValueError, UnicodeDecodeError):
        raw = (await request.body()).decode("utf-8", errors="replace")
        logger.log(resolve_level(None), "%s", raw, extra=extra)
    else:
        logger.log(
            resolve_level(body.get("log")),
            "%s",
            json.dumps(body, default=str, ensure_ascii=False),
            extra=extra,
        )
    return Response(body="OK", content_type=TEXT)

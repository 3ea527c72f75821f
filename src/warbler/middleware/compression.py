"""Gzip response compression.

Compresses text-like bodies of at least ``minimum_size`` bytes when the
client sends ``Accept-Encoding: gzip``. Already-encoded responses and
binary content types pass through untouched.
"""

import gzip

from warbler.http.request import Request
from warbler.http.response import Response
from warbler.middleware.protocol import Next

_COMPRESSIBLE = (
    "text/",
    "application/json",
    "application/javascript",
    "application/xml",
    "image/svg+xml",
)


def _accepts_gzip(request: Request) -> bool:
    accept = request.headers.get("accept-encoding", "")
    return any(part.split(";", 1)[0].strip().lower() == "gzip" for part in accept.split(","))


class GZipMiddleware:
    """Compress large text responses with gzip.

    Usage::

        app.add_middleware(GZipMiddleware(minimum_size=1024))
    """

    __slots__ = ("_level", "_minimum_size")

    def __init__(self, minimum_size: int = 1024, *, level: int = 6) -> None:
        self._minimum_size = minimum_size
        self._level = level

    async def __call__(self, request: Request, next: Next) -> Response:
        response = await next(request)
        if not _accepts_gzip(request):
            return response
        if response.header("content-encoding") is not None:
            return response
        if not response.content_type.startswith(_COMPRESSIBLE):
            return response

        body = response.body_bytes
        if len(body) < self._minimum_size:
            return response

        # Content-Length from upstream no longer matches
        headers = tuple(
            (name, value) for name, value in response.headers if name.lower() != "content-length"
        )
        compressed = gzip.compress(body, compresslevel=self._level)
        return (
            Response(
                body=compressed,
                status=response.status,
                content_type=response.content_type,
                headers=headers,
                cookies=response.cookies,
            )
            .with_header("Content-Encoding", "gzip")
            .with_header("Vary", "Accept-Encoding")
        )

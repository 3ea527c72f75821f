"""Static file serving from the public directory.

Compiled bundles, images and the favicon live in one directory that is
served ahead of the page pipeline. Anything that is not a regular file
there falls through, so the catch-all page route still answers ``/``
and every client-side path.
"""

import mimetypes
from pathlib import Path

from warbler.http.request import Request
from warbler.http.response import TEXT, Response
from warbler.middleware.protocol import Next


class StaticFiles:
    """Middleware that serves files from *directory* under *prefix*.

    Symlinks are resolved and the final path must stay inside the
    directory; a request that escapes it gets 403.

    Usage::

        app.add_middleware(StaticFiles("./public"))
        app.add_middleware(StaticFiles("./build", prefix="/assets"))
    """

    __slots__ = ("_cache_control", "_directory", "_prefix")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/",
        *,
        cache_control: str = "public, max-age=3600",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._cache_control = cache_control
        stripped = "/" + prefix.strip("/")
        self._prefix = stripped if stripped != "/" else ""

    @property
    def directory(self) -> Path:
        return self._directory

    def _relative(self, path: str) -> str | None:
        """Path below the prefix, or ``None`` when the prefix does not apply."""
        if not self._prefix:
            return path.lstrip("/")
        if path == self._prefix or path.startswith(self._prefix + "/"):
            return path[len(self._prefix) :].lstrip("/")
        return None

    async def __call__(self, request: Request, next: Next) -> Response:
        if request.method not in ("GET", "HEAD"):
            return await next(request)

        relative = self._relative(request.path)
        # Directories (including the root) belong to the page pipeline
        if not relative:
            return await next(request)

        file_path = (self._directory / relative).resolve()
        if not file_path.is_relative_to(self._directory):
            return Response(body="Forbidden", status=403, content_type=TEXT)
        if not file_path.is_file():
            return await next(request)

        return self._serve_file(file_path, head=request.method == "HEAD")

    def _serve_file(self, file_path: Path, *, head: bool = False) -> Response:
        content_type, _ = mimetypes.guess_type(str(file_path))
        if content_type is None:
            content_type = "application/octet-stream"
        elif content_type.startswith("text/") or content_type in (
            "application/javascript",
            "application/json",
        ):
            content_type += "; charset=utf-8"

        body = file_path.read_bytes()
        return (
            Response(body=b"" if head else body, content_type=content_type)
            .with_header("Content-Length", str(len(body)))
            .with_header("Cache-Control", self._cache_control)
        )

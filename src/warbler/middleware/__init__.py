"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    CredentialMiddleware -- Optional signed-cookie authentication
    GZipMiddleware -- Compress large text responses
    StaticFiles -- Serve static files from a directory
"""

from warbler.middleware.auth import CredentialConfig, CredentialMiddleware
from warbler.middleware.compression import GZipMiddleware
from warbler.middleware.protocol import Middleware, Next
from warbler.middleware.static import StaticFiles

__all__ = [
    "CredentialConfig",
    "CredentialMiddleware",
    "GZipMiddleware",
    "Middleware",
    "Next",
    "StaticFiles",
]

"""Development server with hot reload.

Starts a pounce ASGI server with the live warbler App object in
single-worker mode with reload enabled.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("warbler.server")


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = True,
    reload_include: tuple[str, ...] = (),
    reload_dirs: tuple[str, ...] = (),
    app_path: str | None = None,
) -> None:
    """Start a pounce dev server with the given warbler App.

    Args:
        app: ASGI callable (warbler App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Enable auto-reload on file changes.
        reload_include: Extra file extensions to watch (e.g. ``(".css",)``).
        reload_dirs: Extra directories to watch alongside cwd.
        app_path: Optional ``"module:attribute"`` import string. When set,
            pounce reimports the app on each reload so code changes on
            disk take effect. Route definitions alone can also be swapped
            in place with ``App.swap_resolver``.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=reload_include,
        reload_dirs=reload_dirs,
    )
    logger.info("dev server on http://%s:%d/ (reload=%s)", host, port, reload)
    Server(config, app, app_path=app_path).run()

"""Production launch — single process or supervised cluster.

``serve(app)`` decides the process role from ``app.config.clustered``:

- clustered: this process becomes the coordinator. It binds the listening
  socket once and supervises one pounce worker process per CPU (or
  ``config.workers``), each serving from that inherited socket;
- otherwise: this process binds the port and serves directly.
"""

from __future__ import annotations

import functools
import logging
import os
import socket
from typing import TYPE_CHECKING, Any

from warbler.server.supervisor import Supervisor

if TYPE_CHECKING:
    from warbler.app import App

logger = logging.getLogger("warbler.server")

LISTEN_BACKLOG = 2048


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind the shared listening socket in the coordinator.

    Forked workers inherit it, so every worker accepts on one socket and
    a port that is already taken fails here instead of in each worker.
    """
    sock = socket.create_server(
        (host, port),
        backlog=LISTEN_BACKLOG,
        reuse_port=hasattr(socket, "SO_REUSEPORT"),
    )
    sock.set_inheritable(True)
    return sock


def run_worker(
    app: App,
    host: str | None = None,
    port: int | None = None,
    listener: socket.socket | None = None,
) -> None:
    """Serve *app* from this process with one pounce worker.

    With *listener*, the worker serves from that already-bound socket
    instead of binding its own. TLS is enabled when both the certificate
    and key paths are set.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = app.config
    _host = host or config.host
    _port = port or config.port
    tls = bool(config.ssl_certfile and config.ssl_keyfile)

    options: dict[str, Any] = {
        "host": _host,
        "port": _port,
        "workers": 1,
        "log_format": config.log_format,
        "log_level": config.log_level,
        "ssl_certfile": config.ssl_certfile if tls else None,
        "ssl_keyfile": config.ssl_keyfile if tls else None,
    }
    if listener is not None:
        _host, _port = listener.getsockname()[:2]
        options["fd"] = listener.fileno()

    scheme = "https" if tls else "http"
    logger.info("worker %d serving %s://%s:%d/", os.getpid(), scheme, _host, _port)
    Server(ServerConfig(**options), app).run()


def serve(app: App, host: str | None = None, port: int | None = None) -> None:
    """Run *app* in production, clustered or not."""
    config = app.config
    if not config.clustered:
        run_worker(app, host, port)
        return

    listener = bind_listener(host or config.host, port or config.port)
    supervisor = Supervisor(
        functools.partial(run_worker, app, host, port, listener),
        workers=config.workers or None,
        restart_delay=config.restart_delay,
    )
    logger.info("coordinator %d running", os.getpid())
    try:
        supervisor.run()
    finally:
        listener.close()

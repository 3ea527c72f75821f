"""``warbler run`` — development or production server command."""

import argparse
import dataclasses
import sys

from warbler.cli._resolve import resolve_app
from warbler.logging import configure_logging


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and start it.

    CLI flags override the app's config. Debug apps get the reloading
    dev server; everything else goes through ``serve()``, which honours
    ``--cluster``.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    overrides: dict[str, object] = {}
    if args.cluster:
        overrides["clustered"] = True
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.log_format is not None:
        overrides["log_format"] = args.log_format
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if overrides:
        app.config = dataclasses.replace(app.config, **overrides)

    configure_logging(app.config.log_level, app.config.log_format)

    host = args.host or app.config.host
    port = args.port or app.config.port

    if app.config.debug:
        from warbler.server.dev import run_dev_server

        run_dev_server(
            app,
            host,
            port,
            reload=True,
            reload_include=app.config.reload_include,
            reload_dirs=app.config.reload_dirs,
            app_path=args.app,
        )
    else:
        from warbler.server.production import serve

        serve(app, host, port)

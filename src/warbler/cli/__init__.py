"""Warbler CLI — run the server.

Entry point registered as ``warbler`` in ``pyproject.toml``::

    [project.scripts]
    warbler = "warbler.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``warbler`` command."""
    parser = argparse.ArgumentParser(
        prog="warbler",
        description="Warbler — server-side rendering pipeline with a data API.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- warbler run ------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start dev or production server")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--cluster",
        action="store_true",
        help="Supervise one worker process per CPU (production only)",
    )
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker process count with --cluster (0=one per CPU)",
    )
    run_parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Log output format",
    )
    run_parser.add_argument("--log-level", default=None, help="Log level (debug, info, ...)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from warbler.cli._run import run_server

        run_server(args)

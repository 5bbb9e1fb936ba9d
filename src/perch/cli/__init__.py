"""Perch CLI — inspect and validate an application.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — controller/action web framework.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch routes ------------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List controller actions")
    routes_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )

    # -- perch check -------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check", help="Validate the action table and report actions without views"
    )
    check_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from perch.cli._check import run_check

        run_check(args)

"""``perch routes`` — list registered controller actions.

Prints one row per action: the query string that reaches it, the
handler, and the conventional view path.
"""

import argparse
import sys

from perch.cli._resolve import load_app
from perch.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Freeze the app named by ``args.app`` and print its action table."""
    app = load_app(args)
    try:
        endpoints = app.endpoints
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not endpoints:
        print("No actions registered.")
        return

    locator = app.locator
    rows: list[tuple[str, str, str]] = [
        (
            f"?controller={endpoint.controller}&action={endpoint.action}",
            endpoint.qualname,
            str(locator.conventional_path(endpoint.controller, endpoint.action)),
        )
        for endpoint in endpoints
    ]

    max_target = max(max(len(r[0]) for r in rows), 6)  # "TARGET" header
    max_handler = max(max(len(r[1]) for r in rows), 7)  # "HANDLER" header

    fmt = f"{{:<{max_target}}}  {{:<{max_handler}}}  {{}}"
    print(fmt.format("TARGET", "HANDLER", "VIEW"))
    sep_len = max_target + max_handler + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for target, handler_name, view in rows:
        print(fmt.format(target, handler_name, view))

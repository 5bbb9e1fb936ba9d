"""``perch check`` — validate an app before serving it.

Freezing the app validates the action table (duplicate or non-callable
actions fail). Actions without a conventional view are reported as
warnings: they still work, sending their result as text or JSON.
"""

import argparse
import sys

from perch.cli._resolve import load_app
from perch.errors import ConfigurationError


def run_check(args: argparse.Namespace) -> None:
    """Exit 1 on configuration errors; print warnings for missing views."""
    app = load_app(args)
    try:
        missing = app.missing_views()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    for endpoint, path in missing:
        print(f"warning: {endpoint.controller}.{endpoint.action} has no view at {path}")
    count = len(app.endpoints)
    print(f"{count} action{'s' if count != 1 else ''} checked, {len(missing)} without a view.")

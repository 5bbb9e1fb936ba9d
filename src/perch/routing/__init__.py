"""Controller/action dispatch table."""

from perch.routing.table import ActionTable, Endpoint

__all__ = ["ActionTable", "Endpoint"]

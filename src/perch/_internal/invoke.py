"""Invoke helpers — call sync or async callables uniformly.

Actions, error handlers, and lifecycle hooks can be ``def`` or
``async def``. The sync/async check lives here, in one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(action, **kwargs)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it is awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

"""``View`` — accessors for the current request's view context.

Controllers and template helpers use these instead of carrying the
context around::

    from perch import View

    class HomeController(Controller):
        def index(self):
            View.set_title("Home")
            View.set_layout("main")
            return {"greeting": "hi"}

Every accessor reads or writes the ``ViewContext`` of the dispatch
running in the current task, and raises ``LookupError`` outside one.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from perch.results import ViewResult
from perch.views.context import ModelState, ViewContext, get_view_context, merge_view_data


class View:
    """Static façade over the per-request ``ViewContext``."""

    __slots__ = ()

    @staticmethod
    def get_view_context() -> ViewContext:
        return get_view_context()

    @staticmethod
    def set_layout(path: str | None) -> None:
        """Use *path* (a name in the shared folder, or a full path) as layout."""
        get_view_context().layout = path

    @staticmethod
    def get_layout() -> str | None:
        return get_view_context().layout

    @staticmethod
    def set_title(title: str | None) -> None:
        get_view_context().title = title

    @staticmethod
    def get_title() -> str | None:
        return get_view_context().title

    @staticmethod
    def set_data(key: str, value: Any) -> None:
        get_view_context().view_data[key] = value

    @staticmethod
    def get_data(key: str | None = None) -> Any:
        """Value stored under *key* (None if absent), or all data without a key."""
        data = get_view_context().view_data
        if key is None:
            return data
        return data.get(key)

    @staticmethod
    def merge_data(data: Mapping[str, Any]) -> None:
        """Merge *data* into the view data with the unique-union policy."""
        vc = get_view_context()
        vc.view_data = merge_view_data(vc.view_data, data)

    @staticmethod
    def get_model() -> Any:
        """The payload the current view renders."""
        return get_view_context().action_result

    @staticmethod
    def inject_model(default: Any = None) -> Any:
        """Return the view result's model, or *default*.

        The model wins only when the current result is a ``ViewResult``
        carrying a non-empty model.
        """
        result = get_view_context().result
        if isinstance(result, ViewResult) and result.model:
            return result.model
        return default

    @staticmethod
    def get_model_state() -> ModelState:
        return get_view_context().model_state

    @staticmethod
    def get_view_file() -> Path | None:
        """The view file the pipeline resolved, once rendering has started."""
        return get_view_context().view_file

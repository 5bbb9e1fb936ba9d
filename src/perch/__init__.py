"""Perch — a small controller/action web framework on ASGI.

One request maps to one controller action through two parameters,
``controller`` and ``action``. The action's result renders through a
view template, optionally wrapped in a layout; anything without a view
goes out as text or JSON.

Basic usage::

    from perch import App, Controller

    app = App()

    @app.controller()
    class HomeController(Controller):
        def index(self):
            return self.view({"name": "world"}, title="Welcome")

``views/home/index.html`` renders with ``model``, ``title``,
``view_data`` and ``model_state`` in scope.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "ContentResult",
    "Controller",
    "HTTPError",
    "HttpResponse",
    "HttpStatusCodeResult",
    "MissingRequestField",
    "ModelState",
    "NotFound",
    "PayloadTooLarge",
    "PerchError",
    "Request",
    "Response",
    "SerializationError",
    "UploadFile",
    "View",
    "ViewContext",
    "ViewNotFound",
    "ViewResult",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Controller":
        from perch.controllers import Controller

        return Controller

    if name == "View":
        from perch.view import View

        return View

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "UploadFile":
        from perch.http.forms import UploadFile

        return UploadFile

    if name in ("Response", "HttpResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("ViewResult", "HttpStatusCodeResult", "ContentResult"):
        from perch import results as _results

        return getattr(_results, name)

    if name in ("ViewContext", "ModelState"):
        from perch.views import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "MissingRequestField",
        "NotFound",
        "PayloadTooLarge",
        "PerchError",
        "SerializationError",
        "ViewNotFound",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

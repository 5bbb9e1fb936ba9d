"""Perch application class.

Mutable during setup (controller registration, error handlers, template
filters). Frozen at runtime when ``__call__()`` is first invoked.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from kida import Environment

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.config import AppConfig
from perch.controllers import controller_actions, controller_name
from perch.routing.table import ActionTable, Endpoint
from perch.server.handler import handle_request
from perch.views.render import KidaRenderer, ViewRenderer, create_environment
from perch.views.resolve import ViewLocator

logger = logging.getLogger("perch.server")


@dataclass(slots=True)
class _PendingController:
    """A controller class waiting to be compiled."""

    name: str
    cls: type


@dataclass(slots=True)
class _PendingAction:
    """A function action waiting to be compiled."""

    controller: str
    action: str
    handler: Callable[..., Any]


class App:
    """The perch application.

    Usage::

        app = App(AppConfig(views_dir="views"))

        @app.controller()
        class HomeController(Controller):
            def index(self):
                return self.view({"greeting": "hello"}, title="Home")

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app, even when several workers call
        ``__call__()`` concurrently on the first request.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_locator",
        "_pending_actions",
        "_pending_controllers",
        "_renderer",
        "_shutdown_hooks",
        "_startup_hooks",
        # Compiled state (populated by _freeze)
        "_table",
        "_template_filters",
        "_template_globals",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        renderer: ViewRenderer | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_controllers: list[_PendingController] = []
        self._pending_actions: list[_PendingAction] = []
        self._error_handlers: dict[int | type, Callable[..., Any]] = {}
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._table: ActionTable | None = None
        self._kida_env: Environment | None = None
        self._renderer: ViewRenderer | None = renderer  # User-provided renderer wins
        self._locator: ViewLocator | None = None

    # -- Controller registration --

    def controller(self, name: str | None = None) -> Callable[[type], type]:
        """Register a controller class via decorator.

        Every public method becomes an action. The controller name
        defaults to the class name without its ``Controller`` suffix.
        """

        def decorator(cls: type) -> type:
            self._check_not_frozen()
            if not isinstance(cls, type):
                msg = f"@app.controller() expects a class, got {cls!r}"
                raise TypeError(msg)
            self._pending_controllers.append(_PendingController(name or controller_name(cls), cls))
            return cls

        return decorator

    def action(
        self,
        controller: str,
        action: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a function as a single controller action.

        Usage::

            @app.action("Home", "about")
            def about():
                return ViewResult(title="About")
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            name = action or getattr(func, "__name__", "")
            self._pending_actions.append(_PendingAction(controller, name, func))
            return func

        return decorator

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register an error handler via decorator."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            filter_name = name or func.__name__
            self._template_filters[filter_name] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            global_name = name or func.__name__
            self._template_globals[global_name] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def endpoints(self) -> list[Endpoint]:
        """Every registered action, sorted. Freezes the app."""
        self._ensure_frozen()
        assert self._table is not None
        return self._table.endpoints

    @property
    def locator(self) -> ViewLocator:
        self._ensure_frozen()
        assert self._locator is not None
        return self._locator

    def missing_views(self) -> list[tuple[Endpoint, Path]]:
        """Actions whose conventional view file does not exist.

        Not an error: such actions send their payload as text or JSON.
        """
        locator = self.locator
        missing: list[tuple[Endpoint, Path]] = []
        for endpoint in self.endpoints:
            path = locator.conventional_path(endpoint.controller, endpoint.action)
            if not path.is_file():
                missing.append((endpoint, path))
        return missing

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._table is not None
        assert self._renderer is not None
        assert self._locator is not None

        await handle_request(
            scope,
            receive,
            send,
            table=self._table,
            renderer=self._renderer,
            locator=self._locator,
            config=self.config,
            error_handlers=self._error_handlers,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        try:
            self._ensure_frozen()
        except Exception as exc:
            logger.exception("Application failed to start")
            await receive()
            await send({"type": "lifespan.startup.failed", "message": str(exc)})
            return

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        await invoke(hook)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        if self.config.debug:
            logging.getLogger("perch").setLevel(self.config.log_level.upper())

        # 1. Compile the action table
        table = ActionTable()
        for pending in self._pending_controllers:
            for action in controller_actions(pending.cls):
                table.add(Endpoint(pending.name, action, controller_class=pending.cls))
        for pending_action in self._pending_actions:
            table.add(
                Endpoint(
                    pending_action.controller,
                    pending_action.action,
                    handler=pending_action.handler,
                )
            )
        table.compile()

        # 2. View lookup and rendering
        views_dir = Path(self.config.views_dir)
        locator = ViewLocator(
            views_dir,
            shared_dir_name=self.config.shared_dir,
            suffix=self.config.view_suffix,
        )
        if self._renderer is None:
            self._kida_env = create_environment(
                self.config, self._template_filters, self._template_globals
            )
            self._renderer = KidaRenderer(self._kida_env, views_dir)

        self._table = table
        self._locator = locator
        self._frozen = True
        logger.debug("Compiled %d actions", len(table))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register controllers, error handlers, and filters before the first request."
            )
            raise RuntimeError(msg)

"""Tests for perch.app — registration, dispatch end to end, and ASGI entry."""

import json
from pathlib import Path
from typing import Any

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.controllers import Controller
from perch.errors import ConfigurationError, HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.results import ViewResult
from perch.testing import TestClient
from perch.view import View
from perch.views.context import get_view_context


def _write(root: Path, name: str, source: str) -> None:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")


@pytest.fixture
def views(tmp_path: Path) -> Path:
    root = tmp_path / "views"
    _write(root, "home/index.html", "<h1>{{ title }}</h1><p>Hello {{ model.name }}</p>")
    _write(
        root,
        "home/fail.html",
        "{% if model_state.exception %}failed: {{ model_state.exception }}{% end %}",
    )
    _write(root, "home/save.html", "saved {{ model.name }}")
    _write(root, "home/shout.html", "{{ model | shout }}")
    _write(root, "home/greet.html", "{{ greeting('Ada') }}")
    _write(root, "shared/main.html", "<main>{{ title }}|{{ content }}</main>")
    return root


def _make_app(views: Path, **config: Any) -> App:
    app = App(AppConfig(views_dir=views, **config))

    @app.controller()
    class HomeController(Controller):
        def index(self):
            View.set_title("Welcome")
            return self.view(_Named("Ada"))

        def fail(self):
            raise ValueError("boom")

        def save(self, model):
            return ViewResult(model)

        def decorated(self):
            View.set_layout("main")
            return self.view(_Named("x"), view="index", title="Decorated")

        def missing(self):
            return self.status(404, "No such user")

        def data(self):
            return {"items": [1, 2], "ok": True}

        def text(self):
            return "plain text"

        def forbidden(self):
            raise HTTPError(status=403, detail="Nope")

        def broken_layout(self):
            return self.view(layout="nowhere")

        def upload(self, request: Request):
            doc = request.files("doc")
            return f"{doc.filename}:{doc.size}"

        def cookie(self):
            return self.request.cookies("theme") or "none"

        async def later(self):
            return "async ok"

        def shout(self):
            return "hey"

        def greet(self):
            return self.view()

        def echo(self):
            View.set_layout("main")
            return self.request.query("q")

    @app.template_filter()
    def shout(value: str) -> str:
        return value.upper() + "!"

    @app.template_global()
    def greeting(name: str) -> str:
        return f"Hi {name}"

    @app.action("Blog", "list")
    def blog_list():
        return ["first", "second"]

    return app


class _Named:
    def __init__(self, name: str) -> None:
        self.name = name


class TestAppRegistration:
    def test_controller_decorator(self) -> None:
        app = App()

        @app.controller()
        class ShopController(Controller):
            def index(self):
                return None

        assert app._pending_controllers[0].name == "Shop"

    def test_controller_custom_name(self) -> None:
        app = App()

        @app.controller("store")
        class ShopController(Controller):
            pass

        assert app._pending_controllers[0].name == "store"

    def test_action_decorator_defaults_to_function_name(self) -> None:
        app = App()

        @app.action("Home")
        def about():
            return "about"

        assert app._pending_actions[0].action == "about"

    def test_error_decorator(self) -> None:
        app = App()

        @app.error(404)
        def not_found():
            return "Not found"

        assert 404 in app._error_handlers

    def test_cannot_register_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError, match="Cannot modify"):
            app.on_startup(lambda: None)

    def test_duplicate_actions_fail_at_freeze(self) -> None:
        app = App()

        @app.controller()
        class HomeController(Controller):
            def index(self):
                return None

        @app.action("home", "INDEX")
        def index():
            return None

        with pytest.raises(ConfigurationError, match="Duplicate"):
            app._ensure_frozen()

    def test_endpoints(self, views: Path) -> None:
        app = _make_app(views)
        pairs = {(e.controller, e.action) for e in app.endpoints}
        assert ("Home", "index") in pairs
        assert ("Blog", "list") in pairs


class TestDispatch:
    async def test_defaults_to_home_index(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text == "<h1>Welcome</h1><p>Hello Ada</p>"
        assert response.content_type is None

    async def test_query_selects_action_case_insensitively(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"controller": "home", "action": "TEXT"})
        assert response.text == "plain text"

    async def test_form_target_beats_query(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.post(
                "/", form={"action": "text"}, query={"action": "data"}
            )
        assert response.text == "plain text"

    async def test_unknown_action_is_404(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "nope"})
        assert response.status == 404
        assert "nope" in response.text

    async def test_unknown_controller_is_404(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"controller": "Admin"})
        assert response.status == 404

    async def test_action_failure_renders_view_with_exception(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "fail"})
        assert response.status == 500
        assert response.text == "failed: boom"

    async def test_action_failure_status_configurable(self, views: Path) -> None:
        async with TestClient(_make_app(views, action_error_status=None)) as client:
            response = await client.get("/", query={"action": "fail"})
        assert response.status == 200
        assert response.text == "failed: boom"

    async def test_post_binds_model(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.post("/", form={"action": "save", "name": "Grace"})
        assert response.text == "saved Grace"

    async def test_layout_set_during_action(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "decorated"})
        assert response.text == "<main>Decorated|<h1>Decorated</h1><p>Hello x</p></main>"

    async def test_layout_escapes_raw_payload(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "echo", "q": "<b>hi</b>"})
        assert response.status == 200
        assert "&lt;b&gt;hi" in response.text
        assert "<b>" not in response.text

    async def test_status_result(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "missing"})
        assert response.status == 404
        assert response.text == "No such user"

    async def test_json_fallback(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "data"})
        assert response.content_type == "application/json"
        assert json.loads(response.text) == {"items": [1, 2], "ok": True}

    async def test_function_action(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"controller": "Blog", "action": "list"})
        assert response.content_type == "application/json"
        assert response.text == '["first","second"]'

    async def test_async_action(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "later"})
        assert response.text == "async ok"

    async def test_template_filter(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "shout"})
        assert response.text == "HEY!"

    async def test_template_global(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "greet"})
        assert response.text == "Hi Ada"

    async def test_upload(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.post(
                "/",
                form={"action": "upload"},
                files={"doc": ("notes.txt", b"hello", "text/plain")},
            )
        assert response.text == "notes.txt:5"

    async def test_cookies(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "cookie"}, cookies={"theme": "dark"})
        assert response.text == "dark"

    async def test_view_context_reset_after_request(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            await client.get("/")
        with pytest.raises(LookupError):
            get_view_context()


class TestErrorHandling:
    async def test_http_error_from_action(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "forbidden"})
        assert response.status == 403
        assert response.text == "Nope"

    async def test_registered_error_handler(self, views: Path) -> None:
        app = _make_app(views)

        @app.error(403)
        def forbidden(request: Request, exc: HTTPError) -> str:
            return f"custom {exc.detail}"

        async with TestClient(app) as client:
            response = await client.get("/", query={"action": "forbidden"})
        assert response.status == 403
        assert response.text == "custom Nope"

    async def test_error_handler_returning_response(self, views: Path) -> None:
        app = _make_app(views)

        @app.error(404)
        def not_found() -> Response:
            return Response("gone", status=410)

        async with TestClient(app) as client:
            response = await client.get("/", query={"action": "nope"})
        assert response.status == 410

    async def test_missing_layout_is_500(self, views: Path) -> None:
        async with TestClient(_make_app(views)) as client:
            response = await client.get("/", query={"action": "broken_layout"})
        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_debug_includes_exception(self, views: Path) -> None:
        async with TestClient(_make_app(views, debug=True)) as client:
            response = await client.get("/", query={"action": "broken_layout"})
        assert response.status == 500
        assert "ViewNotFound" in response.text

    async def test_payload_too_large(self, views: Path) -> None:
        async with TestClient(_make_app(views, max_content_length=10)) as client:
            response = await client.post("/", form={"action": "save", "name": "x" * 50})
        assert response.status == 413

    async def test_status_result_unaffected_by_error_handlers(self, views: Path) -> None:
        app = _make_app(views)

        @app.error(404)
        def not_found() -> str:
            return "handler"

        async with TestClient(app) as client:
            response = await client.get("/", query={"action": "missing"})
        assert response.text == "No such user"


class TestLifespan:
    async def test_hooks_run(self, views: Path) -> None:
        app = _make_app(views)
        events: list[str] = []

        @app.on_startup
        async def start() -> None:
            events.append("start")

        @app.on_shutdown
        def stop() -> None:
            events.append("stop")

        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict] = []

        async def receive() -> dict:
            return next(messages)

        async def send(message: dict) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert events == ["start", "stop"]
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure_reported(self, views: Path) -> None:
        app = _make_app(views)

        @app.on_startup
        def start() -> None:
            raise RuntimeError("no database")

        messages = iter([{"type": "lifespan.startup"}])
        sent: list[dict] = []

        async def receive() -> dict:
            return next(messages)

        async def send(message: dict) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_test_client_runs_hooks(self, views: Path) -> None:
        app = _make_app(views)
        events: list[str] = []
        app.on_startup(lambda: events.append("start"))
        app.on_shutdown(lambda: events.append("stop"))

        async with TestClient(app):
            assert events == ["start"]
        assert events == ["start", "stop"]

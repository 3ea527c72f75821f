"""Tests for warbler.app — setup, freezing and the ASGI surface."""

import pytest

from warbler.app import App
from warbler.config import AppConfig
from warbler.errors import ConfigurationError, HTTPError, NotFound
from warbler.http.response import Response
from warbler.middleware.auth import CredentialMiddleware
from warbler.pages import HtmlView, PageRouter
from warbler.testing import TestClient


def _plain_app(**config: object) -> App:
    return App(AppConfig(compress=False, **config))


async def _lifespan(app: App, *messages: str) -> list[dict]:
    inbox = [{"type": m} for m in messages]
    sent: list[dict] = []

    async def receive():
        return inbox.pop(0)

    async def send(message):
        sent.append(message)

    await app({"type": "lifespan"}, receive, send)
    return sent


class TestRoutes:
    async def test_handler_kwargs(self) -> None:
        app = _plain_app()

        @app.route("/items/{id:int}")
        def item(request, id: int):
            return {"id": id, "path": request.path}

        async with TestClient(app) as client:
            response = await client.get("/items/7")
        assert response.json() == {"id": 7, "path": "/items/7"}

    async def test_async_handler_and_methods(self) -> None:
        app = _plain_app()

        @app.route("/echo", methods=["POST"])
        async def echo(request):
            return await request.json(), 201

        async with TestClient(app) as client:
            response = await client.post("/echo", json={"a": 1})
        assert response.status == 201
        assert response.json() == {"a": 1}

    async def test_not_found_without_pages(self) -> None:
        async with TestClient(_plain_app()) as client:
            response = await client.get("/nowhere")
        assert response.status == 404
        assert "<!doctype html>" in response.text

    async def test_not_found_json(self) -> None:
        async with TestClient(_plain_app()) as client:
            response = await client.get("/nowhere", headers={"Accept": "application/json"})
        assert response.status == 404
        assert response.json()["errors"][0]["message"].startswith("No route matches")

    async def test_body_too_large(self) -> None:
        app = _plain_app(max_content_length=4)

        @app.route("/upload", methods=["POST"])
        def upload():
            return "ok"

        async with TestClient(app) as client:
            response = await client.post("/upload", body=b"0123456789")
        assert response.status == 413

    async def test_head_has_no_body(self) -> None:
        app = _plain_app()

        @app.route("/")
        def index():
            return "hello"

        async with TestClient(app) as client:
            response = await client.head("/")
        assert response.status == 200
        assert response.body_bytes == b""
        assert response.header("content-length") == "5"


class TestErrorHandlers:
    async def test_status_handler(self) -> None:
        app = _plain_app()

        @app.error(404)
        def missing(request):
            return f"nothing at {request.path}"

        async with TestClient(app) as client:
            response = await client.get("/x")
        assert response.status == 404
        assert response.text == "nothing at /x"

    async def test_exception_handler(self) -> None:
        app = _plain_app()

        @app.route("/")
        def index():
            raise KeyError("k")

        @app.error(KeyError)
        def key_error(request, exc):
            return Response(f"missing {exc}", status=400)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 400

    async def test_http_error_headers(self) -> None:
        app = _plain_app()

        @app.route("/")
        def index():
            raise HTTPError(status=429, detail="slow down", headers=(("Retry-After", "5"),))

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 429
        assert response.header("retry-after") == "5"


class TestFreeze:
    async def test_cannot_modify_after_start(self) -> None:
        app = _plain_app()
        async with TestClient(app):
            pass
        with pytest.raises(RuntimeError, match="after it has started"):
            app.route("/late")(lambda: "x")

    def test_mount_pages_twice(self) -> None:
        app = _plain_app()
        app.mount_pages(PageRouter())
        with pytest.raises(RuntimeError, match="swap_resolver"):
            app.mount_pages(PageRouter())

    def test_secret_adds_credential_middleware(self) -> None:
        app = _plain_app(secret_key="s")
        app._ensure_frozen()
        assert sum(isinstance(mw, CredentialMiddleware) for mw in app._middleware) == 1

    def test_no_secret_no_credential_middleware(self) -> None:
        app = _plain_app()
        app._ensure_frozen()
        assert not any(isinstance(mw, CredentialMiddleware) for mw in app._middleware)

    def test_codec_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            _plain_app().codec  # noqa: B018

    def test_bad_manifest_fails_at_startup(self, tmp_path) -> None:
        app = _plain_app(asset_manifest=tmp_path / "missing.json")
        with pytest.raises(ConfigurationError):
            app._ensure_frozen()

    async def test_manifest_from_config(self, tmp_path) -> None:
        manifest = tmp_path / "assets.json"
        manifest.write_text('{"vendor": {"js": "/v.js"}, "client": {"js": "/c.js"}}')
        pages = PageRouter()
        pages.add("/", lambda context: "home")
        app = _plain_app(asset_manifest=manifest)
        app.mount_pages(pages)
        async with TestClient(app) as client:
            response = await client.get("/")
        assert '<script src="/v.js"></script>' in response.text


class TestPagesIntegration:
    async def test_services_and_template_globals(self) -> None:
        pages = PageRouter()
        pages.add("/", lambda context: HtmlView(context.services["greeting"]))
        app = App(AppConfig(compress=False, secret_key="s"), services={"greeting": "hi"})
        app.mount_pages(pages)
        async with TestClient(app) as client:
            response = await client.get("/")
        assert '<div id="app">hi</div>' in response.text

    async def test_post_to_page_is_405(self) -> None:
        pages = PageRouter()
        pages.add("/", lambda context: "home")
        app = _plain_app()
        app.mount_pages(pages)
        async with TestClient(app) as client:
            response = await client.post("/")
        assert response.status == 405

    async def test_page_not_found_error_is_absorbed(self) -> None:
        pages = PageRouter()

        def missing(context):
            raise NotFound()

        pages.add("/", missing)
        app = _plain_app()
        app.mount_pages(pages)
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 200


class TestLifecycle:
    async def test_lifespan_runs_hooks(self) -> None:
        app = _plain_app()
        calls: list[str] = []
        app.on_startup(lambda: calls.append("startup"))

        @app.on_shutdown
        async def shutdown():
            calls.append("shutdown")

        sent = await _lifespan(app, "lifespan.startup", "lifespan.shutdown")
        assert calls == ["startup", "shutdown"]
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure(self) -> None:
        app = _plain_app()

        @app.on_startup
        def broken():
            raise RuntimeError("no database")

        sent = await _lifespan(app, "lifespan.startup")
        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_worker_scopes(self) -> None:
        app = _plain_app()
        calls: list[str] = []
        app.on_worker_startup(lambda: calls.append("up"))
        app.on_worker_shutdown(lambda: calls.append("down"))

        async def receive():
            return {}

        async def send(message):
            raise AssertionError("worker scopes send nothing")

        client = app.http_client()
        await app({"type": "pounce.worker.startup", "worker_id": 0}, receive, send)
        await app({"type": "pounce.worker.shutdown", "worker_id": 0}, receive, send)
        assert calls == ["up", "down"]
        assert client.is_closed

    async def test_http_client_is_shared(self) -> None:
        app = _plain_app()
        assert app.http_client() is app.http_client()
        await app._close_http_client()

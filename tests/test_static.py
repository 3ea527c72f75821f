"""Tests for warbler.middleware.static — the public directory."""

import pytest

from warbler.app import App
from warbler.config import AppConfig
from warbler.middleware.static import StaticFiles
from warbler.pages import PageRouter
from warbler.testing import TestClient


@pytest.fixture
def public_dir(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")
    (public / "robots.txt").write_text("User-agent: *")
    assets = public / "assets"
    assets.mkdir()
    (assets / "client.js").write_text("console.log('hi');")
    (tmp_path / "secret.txt").write_text("do not serve")
    return public


def _app(public_dir, **config: object) -> App:
    pages = PageRouter()
    pages.add("/", lambda context: "<h1>home</h1>")
    pages.add("/{name}", lambda context, name: f"<p>{name}</p>")
    app = App(AppConfig(public_dir=public_dir, compress=False, **config))
    app.mount_pages(pages)
    return app


class TestPublicDirectory:
    async def test_serves_files(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.get("/assets/client.js")
        assert response.status == 200
        assert response.content_type in (
            "application/javascript; charset=utf-8",
            "text/javascript; charset=utf-8",
        )
        assert response.text == "console.log('hi');"
        assert response.header("cache-control") == "public, max-age=3600"

    async def test_binary_file(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.get("/favicon.ico")
        assert response.status == 200
        assert response.body_bytes == b"\x00\x00\x01\x00"

    async def test_root_goes_to_pages(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.get("/")
        assert '<div id="app"><h1>home</h1></div>' in response.text

    async def test_missing_file_goes_to_pages(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.get("/about")
        assert '<div id="app"><p>about</p></div>' in response.text

    async def test_traversal_forbidden(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.get("/../secret.txt")
        assert response.status == 403
        assert "do not serve" not in response.text

    async def test_head(self, public_dir) -> None:
        async with TestClient(_app(public_dir)) as client:
            response = await client.head("/robots.txt")
        assert response.status == 200
        assert response.body_bytes == b""
        assert response.header("content-length") == str(len("User-agent: *"))

    async def test_cache_control_from_config(self, public_dir) -> None:
        app = _app(public_dir, static_cache_control="no-cache")
        async with TestClient(app) as client:
            response = await client.get("/robots.txt")
        assert response.header("cache-control") == "no-cache"


class TestPrefix:
    async def test_prefix(self, public_dir) -> None:
        app = App(AppConfig(compress=False))
        app.add_middleware(StaticFiles(public_dir / "assets", prefix="/static"))

        @app.route("/static/other")
        def other():
            return "route"

        async with TestClient(app) as client:
            served = await client.get("/static/client.js")
            fallthrough = await client.get("/static/other")
            unprefixed = await client.get("/client.js")

        assert served.text == "console.log('hi');"
        assert fallthrough.text == "route"
        assert unprefixed.status == 404

    async def test_post_passes_through(self, public_dir) -> None:
        app = App(AppConfig(compress=False))
        app.add_middleware(StaticFiles(public_dir))

        @app.route("/robots.txt", methods=["POST"])
        def robots():
            return "posted"

        async with TestClient(app) as client:
            response = await client.post("/robots.txt")
        assert response.text == "posted"

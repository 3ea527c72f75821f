"""Tests for warbler.context — request-scoped state."""

import pytest

from warbler.app import App
from warbler.config import AppConfig
from warbler.context import (
    apply_expired_cookies,
    begin_cookie_expiry,
    end_cookie_expiry,
    expire_cookie,
    get_request,
)
from warbler.http.response import Response
from warbler.testing import TestClient, set_cookies


class TestGetRequest:
    def test_outside_request(self) -> None:
        with pytest.raises(LookupError):
            get_request()

    async def test_inside_handler(self) -> None:
        app = App(AppConfig(compress=False))

        @app.route("/where")
        def where():
            return get_request().path

        async with TestClient(app) as client:
            response = await client.get("/where")
        assert response.text == "/where"


class TestCookieExpiry:
    def test_noop_outside_request(self) -> None:
        expire_cookie("id_token")
        assert apply_expired_cookies(Response()).cookies == ()

    def test_applied_to_response(self) -> None:
        token = begin_cookie_expiry()
        try:
            expire_cookie("id_token", path="/app")
            response = apply_expired_cookies(Response())
        finally:
            end_cookie_expiry(token)

        (cookie,) = response.cookies
        assert cookie.name == "id_token"
        assert cookie.max_age == 0
        assert cookie.path == "/app"

    async def test_survives_handler_errors(self) -> None:
        app = App(AppConfig(compress=False))

        @app.route("/")
        def index():
            expire_cookie("stale")
            raise RuntimeError("boom")

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert any(c.startswith("stale=;") for c in set_cookies(response))

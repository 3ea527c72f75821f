"""Tests for warbler.http — request, response, cookies and negotiation."""

import pytest

from warbler.http.cookies import SetCookie, parse_cookies
from warbler.http.forms import parse_urlencoded
from warbler.http.headers import Headers
from warbler.http.query import QueryParams
from warbler.http.request import Request
from warbler.http.response import JSON, Redirect, Response, json_response
from warbler.server.negotiation import negotiate
from warbler.server.sender import build_headers, send_response


def _request(body: bytes = b"", content_type: str | None = None) -> Request:
    headers = [(b"user-agent", b"tests")]
    if content_type:
        headers.append((b"content-type", content_type.encode()))
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/p",
        "query_string": b"a=1&a=2&b=",
        "headers": headers,
    }
    return Request.from_asgi(scope, receive)


class TestCookies:
    def test_parse(self) -> None:
        assert parse_cookies('id_token=abc; theme="dark"; x=a%20b') == {
            "id_token": "abc",
            "theme": "dark",
            "x": "a b",
        }

    def test_parse_empty(self) -> None:
        assert parse_cookies("") == {}

    def test_set_cookie(self) -> None:
        value = SetCookie("id_token", "t", max_age=60, secure=True).to_header_value()
        assert value == "id_token=t; Max-Age=60; Path=/; Secure; HttpOnly; SameSite=lax"

    def test_deletion(self) -> None:
        cookie = SetCookie("id_token", "", max_age=0)
        assert cookie.is_deletion
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cookie.to_header_value()


class TestHeadersAndQuery:
    def test_headers_case_insensitive(self) -> None:
        headers = Headers.from_dict({"Content-Type": "text/plain"})
        assert headers["content-type"] == "text/plain"
        assert "CONTENT-TYPE" in headers

    def test_headers_get_list(self) -> None:
        headers = Headers(((b"set-cookie", b"a=1"), (b"set-cookie", b"b=2")))
        assert headers.get_list("Set-Cookie") == ["a=1", "b=2"]
        assert len(headers) == 1

    def test_query(self) -> None:
        query = QueryParams(b"a=1&a=2&b=")
        assert query["a"] == "1"
        assert query.get_list("a") == ["1", "2"]
        assert query.to_dict() == {"a": "1", "b": ""}
        assert query.get("missing", "d") == "d"


class TestRequest:
    def test_metadata(self) -> None:
        request = _request()
        assert request.user_agent == "tests"
        assert request.url == "/p?a=1&a=2&b="

    async def test_body_cached(self) -> None:
        request = _request(b"hello")
        assert await request.body() == b"hello"
        assert await request.text() == "hello"

    async def test_payload_json(self) -> None:
        request = _request(b'{"log": "error"}', "application/json")
        assert await request.payload() == {"log": "error"}

    async def test_payload_json_non_object(self) -> None:
        request = _request(b"[1, 2]", "application/json")
        assert await request.payload() == {"body": [1, 2]}

    async def test_payload_form(self) -> None:
        request = _request(b"log=warn&m=x", "application/x-www-form-urlencoded")
        assert await request.payload() == {"log": "warn", "m": "x"}

    async def test_payload_bad_json(self) -> None:
        request = _request(b"{", "application/json")
        with pytest.raises(ValueError):
            await request.payload()

    def test_parse_urlencoded(self) -> None:
        form = parse_urlencoded(b"a=1&a=2&b=x+y")
        assert form["a"] == "1"
        assert form.get_list("a") == ["1", "2"]
        assert form["b"] == "x y"


class TestResponse:
    def test_chaining_is_immutable(self) -> None:
        base = Response("x")
        changed = base.with_status(201).with_header("X-A", "1")
        assert base.status == 200
        assert changed.status == 201
        assert changed.header("x-a") == "1"

    def test_cookies(self) -> None:
        response = Response().with_cookie("a", "1").without_cookie("b")
        assert [c.name for c in response.cookies] == ["a", "b"]
        assert response.cookies[1].max_age == 0

    def test_json_response(self) -> None:
        response = json_response({"a": 1}, status=400, pretty=True)
        assert response.status == 400
        assert response.content_type == JSON
        assert response.json() == {"a": 1}
        assert "\n" in response.text

    def test_redirect(self) -> None:
        response = Redirect("/next", status=301).to_response()
        assert response.status == 301
        assert response.header("Location") == "/next"


class TestNegotiate:
    def test_str(self) -> None:
        assert negotiate("<p/>").content_type.startswith("text/html")

    def test_dict(self) -> None:
        response = negotiate({"ok": True})
        assert response.content_type == JSON
        assert response.json() == {"ok": True}

    def test_none(self) -> None:
        assert negotiate(None).status == 204

    def test_tuples(self) -> None:
        assert negotiate(("created", 201)).status == 201
        response = negotiate(("x", 202, {"X-B": "2"}))
        assert response.status == 202
        assert response.header("X-B") == "2"

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError, match="object"):
            negotiate(object())


class TestSender:
    def test_headers_include_cookies_and_length(self) -> None:
        response = Response("hello").with_cookie("a", "1")
        raw = build_headers(response, b"hello")
        assert (b"content-length", b"5") in raw
        assert any(name == b"set-cookie" for name, _ in raw)

    def test_explicit_length_kept(self) -> None:
        response = Response(b"").with_header("Content-Length", "10")
        raw = build_headers(response, b"")
        assert [v for n, v in raw if n == b"content-length"] == [b"10"]

    async def test_no_body_for_204(self) -> None:
        messages = []

        async def send(message):
            messages.append(message)

        await send_response(Response("ignored", status=204), send)
        assert messages[1]["body"] == b""

    async def test_head_sends_no_body(self) -> None:
        messages = []

        async def send(message):
            messages.append(message)

        await send_response(Response("hello"), send, head=True)
        assert messages[1]["body"] == b""
        assert (b"content-length", b"5") in messages[0]["headers"]

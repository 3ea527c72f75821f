"""Tests for warbler.server.error_page — the fallback document."""

import pytest

from warbler.errors import ConfigurationError, ErrorKind, HTTPError, RenderingError, error_kind
from warbler.server import error_page
from warbler.server.error_page import (
    ERROR_TITLE,
    error_status,
    format_compact_traceback,
    render_error,
    render_error_message,
)


def _raised(exc: Exception) -> Exception:
    try:
        raise exc
    except Exception as caught:
        return caught


class Unprintable(Exception):
    def __str__(self) -> str:
        raise RuntimeError("no string for you")


class BadStatus(Exception):
    @property
    def status(self) -> int:
        raise RuntimeError("status lookup failed")

    @property
    def kind(self):
        raise LookupError("kind lookup failed")


class TestErrorStatus:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [(404, 404), (400, 400), (599, 599), (503, 503), (302, 500), (200, 500), (600, 500)],
    )
    def test_range(self, status: int, expected: int) -> None:
        assert error_status(RenderingError("x", status=status)) == expected

    def test_no_status(self) -> None:
        assert error_status(ValueError("x")) == 500

    def test_non_int_status(self) -> None:
        exc = ValueError("x")
        exc.status = "404"  # type: ignore[attr-defined]
        assert error_status(exc) == 500

    def test_http_error(self) -> None:
        assert error_status(HTTPError(status=403)) == 403

    def test_raising_status_property(self) -> None:
        assert error_status(BadStatus()) == 500

    def test_raising_kind_property(self) -> None:
        assert error_kind(BadStatus()) is ErrorKind.RENDERING


class TestRenderError:
    def test_document(self) -> None:
        document = render_error(_raised(ValueError("disk <full>")))
        assert document.status == 500
        assert document.html.startswith("<!doctype html>")
        assert f"<title>{ERROR_TITLE}</title>" in document.html
        assert "disk &lt;full&gt;" in document.html
        assert ".error-page" in document.html
        assert "<pre>" not in document.html

    def test_status_from_exception(self) -> None:
        assert render_error(RenderingError("missing", status=404)).status == 404

    def test_debug_trace(self) -> None:
        document = render_error(_raised(ValueError("boom")), debug=True)
        assert "<pre>" in document.html
        assert "ValueError: boom" in document.html

    def test_empty_message_uses_type_name(self) -> None:
        assert "ConfigurationError" in render_error(ConfigurationError()).html

    def test_never_raises(self, monkeypatch) -> None:
        def explode(**kwargs):
            raise RuntimeError("shell broken")

        monkeypatch.setattr(error_page, "render_document", explode)
        document = render_error(ValueError("x"))
        assert document.status == 500
        assert ERROR_TITLE in document.html

    def test_unprintable_exception(self) -> None:
        document = render_error(_raised(Unprintable()), debug=True)
        assert document.status == 500
        assert document.html.startswith("<!doctype html>")
        assert "Unprintable" in document.html

    def test_raising_status_property(self) -> None:
        assert render_error(BadStatus("x")).status == 500

    def test_wrapped_view_error_traces_its_cause(self) -> None:
        try:
            try:
                raise ValueError("view exploded")
            except ValueError as exc:
                raise RenderingError("view exploded", status=404) from exc
        except RenderingError as caught:
            wrapped = caught

        document = render_error(wrapped, debug=True)
        assert document.status == 404
        assert "ValueError: view exploded" in document.html


class TestCompactTraceback:
    def test_summary_line(self) -> None:
        text = format_compact_traceback(_raised(KeyError("k")))
        assert text.splitlines()[0] == "KeyError: 'k'"
        assert "test_error_page.py" in text

    def test_format_compact_hook(self) -> None:
        class TemplateProblem(Exception):
            def format_compact(self) -> str:
                return "template.html:3 undefined name"

        assert format_compact_traceback(TemplateProblem()) == "template.html:3 undefined name"

    def test_unprintable_exception(self) -> None:
        text = format_compact_traceback(_raised(Unprintable()))
        assert text.splitlines()[0] == "Unprintable: Unprintable"


class TestErrorMessage:
    def test_small_page(self) -> None:
        html = render_error_message(404, "Nothing here")
        assert "<title>404</title>" in html
        assert "Nothing here" in html

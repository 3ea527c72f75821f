"""Document assembler — the HTML shell around a rendered page.

Every page response, including the fallback error page, goes through
``render_document``. The shell is a kida template compiled once per
environment.
"""

from __future__ import annotations

import functools
import json
from collections.abc import Mapping, Sequence
from typing import Any

from kida import Environment
from kida.template import Markup

from warbler.errors import ConfigurationError
from warbler.pages.context import RenderContext
from warbler.pages.descriptor import RenderDescriptor
from warbler.pages.manifest import AssetManifest
from warbler.pages.renderer import Rendered

DOCTYPE = "<!doctype html>"

DOCUMENT_TEMPLATE = """\
<html class="no-js" lang="en">
<head>
<meta charset="utf-8">
<meta http-equiv="x-ua-compatible" content="ie=edge">
<title>{{ title }}</title>
<meta name="description" content="{{ description }}">
<meta name="viewport" content="width=device-width, initial-scale=1">
{% for script in scripts %}<link rel="preload" href="{{ script }}" as="script">
{% end %}<style id="css">{{ css }}</style>
</head>
<body>
<div id="app">{{ markup }}</div>
{% if state %}<script>window.App={{ state }}</script>
{% end %}{% for script in scripts %}<script src="{{ script }}"></script>
{% end %}</body>
</html>"""

_default_env = Environment(autoescape=True)

_STATE_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


def serialize_state(state: Mapping[str, Any]) -> Markup:
    """JSON for an inline ``<script>``; cannot close the tag or open a comment."""
    return Markup(json.dumps(state, default=str).translate(_STATE_ESCAPES))


def _inline_css(css: str) -> Markup:
    return Markup(css.replace("</", "<\\/"))


@functools.cache
def _default_shell() -> Any:
    return _default_env.from_string(DOCUMENT_TEMPLATE)


def _fill(
    shell: Any,
    *,
    markup: str,
    title: str,
    description: str,
    css: str,
    scripts: Sequence[str],
    state: Mapping[str, Any] | None,
) -> str:
    html = shell.render(
        {
            "title": title,
            "description": description,
            "css": _inline_css(css),
            "markup": Markup(markup),
            "scripts": list(scripts),
            "state": serialize_state(state) if state is not None else None,
        }
    )
    return DOCTYPE + html


def render_document(
    *,
    markup: str,
    title: str = "",
    description: str = "",
    css: str = "",
    scripts: Sequence[str] = (),
    state: Mapping[str, Any] | None = None,
    env: Environment | None = None,
) -> str:
    """Render the full document, ``<!doctype html>`` included.

    The shell is compiled once for the default environment; a custom
    *env* compiles it per call, so callers rendering many documents keep
    a ``DocumentAssembler`` instead.
    """
    shell = _default_shell() if env is None else env.from_string(DOCUMENT_TEMPLATE)
    return _fill(
        shell,
        markup=markup,
        title=title,
        description=description,
        css=css,
        scripts=scripts,
        state=state,
    )


class DocumentAssembler:
    """Builds page documents from rendered markup and the asset manifest.

    Usage::

        assembler = DocumentAssembler(AssetManifest.load("assets.json"), api_url="/api")
        html = assembler.assemble(rendered, descriptor, context)

    Unknown chunk names raise ``ConfigurationError``; that is a build
    problem, not something a single request can recover from.
    """

    __slots__ = ("_api_url", "_manifest", "_shell")

    def __init__(
        self,
        manifest: AssetManifest | None,
        *,
        api_url: str = "",
        env: Environment | None = None,
    ) -> None:
        self._manifest = manifest
        self._api_url = api_url
        self._shell = _default_shell() if env is None else env.from_string(DOCUMENT_TEMPLATE)

    @property
    def manifest(self) -> AssetManifest | None:
        return self._manifest

    def app_state(self, context: RenderContext) -> dict[str, Any]:
        """State handed to the client bundle as ``window.App``."""
        return {"apiUrl": self._api_url, "isMobile": context.is_mobile}

    def scripts(self, chunks: tuple[str, ...] = ()) -> list[str]:
        """Script URLs in load order; no manifest means no scripts."""
        if self._manifest is not None:
            return self._manifest.scripts(chunks)
        if chunks:
            msg = f"Page needs asset chunks {list(chunks)} but no asset manifest is configured"
            raise ConfigurationError(msg)
        return []

    def assemble(
        self,
        rendered: Rendered,
        descriptor: RenderDescriptor,
        context: RenderContext,
    ) -> str:
        scripts = self.scripts(descriptor.chunks)
        return _fill(
            self._shell,
            markup=rendered.markup,
            title=descriptor.title,
            description=descriptor.description,
            css=rendered.css,
            scripts=scripts,
            state=self.app_state(context),
        )

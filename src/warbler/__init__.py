"""Warbler: server-side rendering for a single-page web app.

Renders the first paint of every page on the server, signs identity
cookies, proxies data queries and keeps a pool of worker processes
serving on one port.

Basic usage::

    from warbler import App, AppConfig
    from warbler.pages import HtmlView, PageRouter

    pages = PageRouter()

    @pages.page("/", title="Home")
    def home(context):
        return HtmlView("<h1>Hello</h1>")

    app = App(AppConfig.from_env())
    app.mount_pages(pages)
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "Identity",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "Redirect",
    "Request",
    "Response",
    "WarblerError",
    "current_identity",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import warbler`` fast while providing a clean top-level API.
    """
    if name == "App":
        from warbler.app import App

        return App

    if name == "AppConfig":
        from warbler.config import AppConfig

        return AppConfig

    if name == "Request":
        from warbler.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from warbler.http import response as _resp

        return getattr(_resp, name)

    if name in ("Middleware", "Next"):
        from warbler.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("Identity", "current_identity"):
        from warbler.middleware import auth as _auth

        return getattr(_auth, name)

    if name == "get_request":
        from warbler.context import get_request

        return get_request

    if name in ("WarblerError", "ConfigurationError", "HTTPError", "MethodNotAllowed", "NotFound"):
        from warbler import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

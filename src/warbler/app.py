"""Warbler application class.

Mutable during setup (routes, middleware, pages, query schema).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from kida import Environment

from warbler._internal.asgi import Receive, Scope, Send
from warbler.api.diagnostics import DIAGNOSTICS_PATH, record_client_error
from warbler.api.gateway import QueryGateway, QuerySchema
from warbler.config import AppConfig
from warbler.middleware.auth import CredentialConfig, CredentialMiddleware
from warbler.middleware.compression import GZipMiddleware
from warbler.middleware.protocol import Middleware
from warbler.middleware.static import StaticFiles
from warbler.pages.document import DocumentAssembler
from warbler.pages.manifest import AssetManifest
from warbler.pages.pipeline import PagePipeline
from warbler.pages.resolver import Resolver
from warbler.routing.route import Route
from warbler.routing.router import CATCH_ALL, Router
from warbler.security.credentials import CredentialCodec
from warbler.server.handler import handle_request

if TYPE_CHECKING:
    from warbler.security.login import IdentityProvider, LoginCallback

logger = logging.getLogger("warbler.server")

type Handler = Callable[..., Any]
type ErrorHandler = Callable[..., Any]


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: list[str] | None
    name: str | None


class App:
    """The warbler application.

    Usage::

        app = App(AppConfig.from_env())
        app.mount_pages(pages)            # catch-all server-side rendering
        app.mount_query(schema)           # POST /graphql
        mount_login(app, [provider], app.codec)

        @app.route("/health")
        def health():
            return {"ok": True}

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app.
    """

    __slots__ = (
        "_assembler",
        "_codec",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_http_client",
        "_kida_env",
        "_manifest",
        "_middleware",
        "_middleware_list",
        "_pending_routes",
        "_pipeline",
        "_resolver",
        "_router",
        "_services",
        "_shutdown_hooks",
        "_startup_hooks",
        "_worker_shutdown_hooks",
        "_worker_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        manifest: AssetManifest | None = None,
        kida_env: Environment | None = None,
        services: Mapping[str, Any] | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._worker_startup_hooks: list[Callable[..., Any]] = []
        self._worker_shutdown_hooks: list[Callable[..., Any]] = []
        self._services: dict[str, Any] = dict(services or {})
        self._manifest: AssetManifest | None = manifest
        self._kida_env: Environment = kida_env or Environment(autoescape=True)
        self._resolver: Resolver | None = None
        self._codec: CredentialCodec | None = None
        self._http_client: httpx.AsyncClient | None = None
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._assembler: DocumentAssembler | None = None
        self._pipeline: PagePipeline | None = None

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            self._pending_routes.append(_PendingRoute(path, func, methods, name))
            return func

        return decorator

    def mount_pages(self, resolver: Resolver) -> None:
        """Serve every unmatched ``GET`` through the page pipeline.

        *resolver* is usually a ``PageRouter``; anything with an async
        ``resolve(context)`` works.
        """
        self._check_not_frozen()
        if self._resolver is not None:
            msg = "Pages are already mounted. Use swap_resolver() to replace the resolver."
            raise RuntimeError(msg)
        self._resolver = resolver

    def swap_resolver(self, resolver: Resolver) -> None:
        """Replace the page resolver, also while serving.

        New route definitions take effect on the next request without a
        restart (dev reload).
        """
        if self._pipeline is not None:
            self._pipeline.swap_resolver(resolver)
        elif self._resolver is None:
            msg = "No pages mounted. Call mount_pages() first."
            raise RuntimeError(msg)
        self._resolver = resolver

    def mount_query(self, schema: QuerySchema, path: str | None = None) -> QueryGateway:
        """Expose *schema* at *path* (``config.query_path`` by default)."""
        gateway = QueryGateway(schema, debug=self.config.debug)
        self.route(path or self.config.query_path, methods=["GET", "POST"], name="query")(gateway)
        return gateway

    def mount_login(
        self,
        providers: Iterable[IdentityProvider],
        **kwargs: Any,
    ) -> LoginCallback:
        """``mount_login`` bound to this app's codec and cookie settings."""
        from warbler.security.login import mount_login

        return mount_login(self, providers, self.codec, self.credential_config, **kwargs)

    # -- Credentials --

    @property
    def credential_config(self) -> CredentialConfig:
        return CredentialConfig(
            cookie_name=self.config.credential_cookie,
            ttl=self.config.credential_ttl,
            secure=self.config.secure_cookies,
        )

    @property
    def codec(self) -> CredentialCodec:
        """Codec for ``config.secret_key``. Raises ``ConfigurationError`` if unset."""
        if self._codec is None:
            self._codec = CredentialCodec(self.config.secret_key)
        return self._codec

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a startup hook, run during ASGI lifespan startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a shutdown hook, run during ASGI lifespan shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    def on_worker_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook that runs on each worker's event loop before it serves."""
        self._check_not_frozen()
        self._worker_startup_hooks.append(func)
        return func

    def on_worker_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook that runs on each worker's event loop after it stops."""
        self._check_not_frozen()
        self._worker_shutdown_hooks.append(func)
        return func

    # -- Shared HTTP client --

    def http_client(self) -> httpx.AsyncClient:
        """The process-wide client behind every ``context.fetch``."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(follow_redirects=False)
        return self._http_client

    async def _close_http_client(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start serving: dev server in debug mode, production otherwise.

        Production honours ``config.clustered`` (coordinator plus workers).
        """
        self._ensure_frozen()

        if self.config.debug:
            from warbler.server.dev import run_dev_server

            run_dev_server(
                self,
                host or self.config.host,
                port or self.config.port,
                reload=True,
                reload_include=self.config.reload_include,
                reload_dirs=self.config.reload_dirs,
            )
        else:
            from warbler.server.production import serve

            serve(self, host, port)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        if scope["type"] == "pounce.worker.startup":
            await self._run_hooks(self._worker_startup_hooks)
            return

        if scope["type"] == "pounce.worker.shutdown":
            await self._run_hooks(self._worker_shutdown_hooks)
            await self._close_http_client()
            return

        self._ensure_frozen()

        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._run_hooks(self._startup_hooks)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                await self._run_hooks(self._shutdown_hooks)
                await self._close_http_client()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _run_hooks(self, hooks: list[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

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
        config = self.config

        # 1. Asset manifest (process-wide, read once)
        if self._manifest is None and config.asset_manifest is not None:
            self._manifest = AssetManifest.load(config.asset_manifest)

        # 2. Route table: explicit routes, diagnostics, then the page catch-all
        router = Router()
        for pending in self._pending_routes:
            methods = frozenset(m.upper() for m in (pending.methods or ["GET"]))
            router.add(
                Route(path=pending.path, handler=pending.handler, methods=methods, name=pending.name)
            )

        router.add(
            Route(
                path=DIAGNOSTICS_PATH,
                handler=record_client_error,
                methods=frozenset({"POST"}),
                name="diagnostics",
            )
        )

        if self._resolver is not None:
            self._assembler = DocumentAssembler(
                self._manifest,
                api_url=config.api_client_url,
                env=self._kida_env,
            )
            self._pipeline = PagePipeline(
                self._resolver,
                self._assembler,
                client=self.http_client,
                api_url=config.api_server_url,
                resolve_timeout=config.resolve_timeout,
                services=self._services,
            )
            router.add(
                Route(
                    path=CATCH_ALL,
                    handler=self._pipeline,
                    methods=frozenset({"GET"}),
                    name="pages",
                )
            )
        router.compile()
        self._router = router

        # 3. Middleware: compression outermost, then static files, then
        #    credentials, then whatever the app registered.
        middleware: list[Middleware] = []
        if config.compress:
            middleware.append(GZipMiddleware(minimum_size=config.compress_min_size))
        if config.public_dir is not None:
            middleware.append(
                StaticFiles(config.public_dir, cache_control=config.static_cache_control)
            )
        has_credentials = any(isinstance(mw, CredentialMiddleware) for mw in self._middleware_list)
        if config.secret_key and not has_credentials:
            middleware.append(CredentialMiddleware(self.codec, self.credential_config))
        middleware.extend(self._middleware_list)
        self._middleware = tuple(middleware)

        # 4. Template globals from middleware (current_identity, ...)
        for mw in self._middleware:
            mw_globals = getattr(mw, "template_globals", None)
            if mw_globals and isinstance(mw_globals, dict):
                for name, func in mw_globals.items():
                    self._kida_env.add_global(name, func)

        self._frozen = True
        logger.debug("app frozen with %d routes", len(router.routes))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and pages before calling app.run()."
            )
            raise RuntimeError(msg)


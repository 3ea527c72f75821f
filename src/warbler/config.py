"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. ``AppConfig.from_env()`` reads the process inputs
(port, secret, clustered toggle, TLS paths) once at startup.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path

_ENV_PREFIX = "WARBLER_"

# 180 days, the lifetime of a login credential
CREDENTIAL_TTL_SECONDS = 60 * 60 * 24 * 180


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, secret_key="s3cr3t")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False

    # Process supervision
    clustered: bool = False
    workers: int = 0  # 0 = one worker per CPU core
    restart_delay: float = 0.0

    # Reload (development mode, requires debug=True)
    reload_include: tuple[str, ...] = ()
    reload_dirs: tuple[str, ...] = ()

    # Security
    secret_key: str = ""
    credential_cookie: str = "id_token"
    credential_ttl: int = CREDENTIAL_TTL_SECONDS
    secure_cookies: bool = False

    # Rendering
    asset_manifest: str | Path | None = None
    api_server_url: str = "http://localhost:3000"
    api_client_url: str = ""
    resolve_timeout: float | None = None

    # Data-query gateway
    query_path: str = "/graphql"

    # Static files
    public_dir: str | Path | None = None
    static_cache_control: str = "public, max-age=3600"

    # Compression
    compress: bool = True
    compress_min_size: int = 1024

    # Limits
    max_content_length: int = 1024 * 1024

    # Logging
    log_format: str = "text"
    log_level: str = "info"

    # TLS (optional)
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> AppConfig:
        """Build a config from ``WARBLER_*`` environment variables.

        Each field maps to ``WARBLER_<FIELD>`` (``WARBLER_PORT``,
        ``WARBLER_SECRET_KEY``). ``WARBLER_CLUSTER`` and ``WARBLER_SECRET``
        are accepted as short aliases. Keyword overrides win over the
        environment.
        """
        env = os.environ if environ is None else environ
        aliases = {"clustered": "CLUSTER", "secret_key": "SECRET"}
        values: dict[str, object] = {}

        for f in fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper())
            if raw is None and f.name in aliases:
                raw = env.get(_ENV_PREFIX + aliases[f.name])
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw, f.type)

        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


_TRUE = frozenset({"1", "true", "yes", "on"})


def _coerce(name: str, raw: str, annotation: object) -> object:
    """Convert an environment string to the field's declared type.

    Field annotations are strings here (postponed evaluation), so the
    dispatch is on their spelling.
    """
    text = str(annotation)
    if text == "bool":
        return raw.strip().lower() in _TRUE
    if text == "int":
        try:
            return int(raw)
        except ValueError:
            msg = f"{_ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}"
            raise ValueError(msg) from None
    if text.startswith("float"):
        if not raw.strip() and "None" in text:
            return None
        try:
            return float(raw)
        except ValueError:
            msg = f"{_ENV_PREFIX}{name.upper()} must be a number, got {raw!r}"
            raise ValueError(msg) from None
    if text.startswith("tuple"):
        return tuple(part.strip() for part in raw.split(",") if part.strip())
    return raw

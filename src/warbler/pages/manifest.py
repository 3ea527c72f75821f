"""Asset manifest — bundle name to compiled script/stylesheet paths.

Produced by the client build as JSON::

    {
        "vendor": {"js": "/assets/vendor.3f1a.js"},
        "client": {"js": "/assets/client.9c2e.js"},
        "users":  {"js": "/assets/users.77b0.js", "css": "/assets/users.77b0.css"}
    }

Loaded once per process and never modified.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from warbler.errors import ConfigurationError

VENDOR = "vendor"
CLIENT = "client"


@dataclass(frozen=True, slots=True)
class Asset:
    js: str
    css: str | None = None


class AssetManifest(Mapping[str, Asset]):
    """Read-only mapping of bundle name to ``Asset``."""

    __slots__ = ("_assets",)

    def __init__(self, assets: Mapping[str, Asset | Mapping[str, Any]] | None = None) -> None:
        parsed: dict[str, Asset] = {}
        for name, entry in (assets or {}).items():
            parsed[name] = entry if isinstance(entry, Asset) else _parse_entry(name, entry)
        self._assets = MappingProxyType(parsed)

    @classmethod
    def load(cls, path: str | Path) -> AssetManifest:
        """Read a manifest file. Raises ``ConfigurationError`` if unusable."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            msg = f"Cannot read asset manifest {str(path)!r}: {exc}"
            raise ConfigurationError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Asset manifest {str(path)!r} must be a JSON object"
            raise ConfigurationError(msg)
        return cls(data)

    def script(self, name: str) -> str:
        """Script path for bundle *name*.

        Raises ``ConfigurationError`` for a bundle the build never emitted.
        """
        asset = self._assets.get(name)
        if asset is None:
            msg = f"Asset manifest has no bundle named {name!r}"
            raise ConfigurationError(msg)
        return asset.js

    def scripts(self, chunks: tuple[str, ...] = ()) -> list[str]:
        """Script paths in load order: vendor, each chunk, client."""
        return [self.script(VENDOR), *(self.script(chunk) for chunk in chunks), self.script(CLIENT)]

    def __getitem__(self, name: str) -> Asset:
        return self._assets[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __repr__(self) -> str:
        return f"AssetManifest({sorted(self._assets)})"


def _parse_entry(name: str, entry: Any) -> Asset:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("js"), str):
        msg = f"Asset manifest entry {name!r} needs a string 'js' path"
        raise ConfigurationError(msg)
    css = entry.get("css")
    return Asset(js=entry["js"], css=css if isinstance(css, str) else None)

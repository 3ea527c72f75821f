"""Urlencoded form bodies.

The diagnostics endpoint and the query gateway accept
``application/x-www-form-urlencoded`` bodies as well as JSON, the same
two encodings the browser client posts.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class FormData(Mapping[str, str]):
    """Immutable parsed form fields.

    ``__getitem__`` returns the first value, ``get_list`` all values.
    """

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, list[str]] | None = None) -> None:
        self._data = data or {}

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FormData({self.to_dict()!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def to_dict(self) -> dict[str, str]:
        """First value for every field."""
        return {key: values[0] for key, values in self._data.items() if values}


def parse_urlencoded(raw: bytes) -> FormData:
    """Parse a urlencoded body. Undecodable bytes are replaced, not rejected."""
    text = raw.decode("utf-8", errors="replace")
    return FormData(parse_qs(text, keep_blank_values=True))

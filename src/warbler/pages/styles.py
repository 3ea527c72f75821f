"""Per-request collection of critical CSS."""

from collections.abc import Iterator


class StyleSet:
    """Deduplicating, insertion-ordered set of CSS text fragments.

    Views call ``context.insert_css()`` while rendering; the document
    assembler inlines ``css`` into the head. One instance per request.
    """

    __slots__ = ("_fragments",)

    def __init__(self) -> None:
        self._fragments: dict[str, None] = {}

    def add(self, *fragments: str) -> None:
        for fragment in fragments:
            if fragment:
                self._fragments.setdefault(fragment, None)

    @property
    def css(self) -> str:
        return "".join(self._fragments)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)

    def __contains__(self, fragment: object) -> bool:
        return fragment in self._fragments

    def __repr__(self) -> str:
        return f"StyleSet({len(self._fragments)} fragments)"

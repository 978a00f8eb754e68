"""Citekey -> URL table filled from ``[@key]: https://...`` paragraphs."""

from __future__ import annotations

from rich.console import Console

from url2cite.errors import UnresolvedCitekeyError
from url2cite.utils import is_url

console = Console(stderr=True)


class CiteKeyTable:
    def __init__(self):
        self._keys: dict[str, str] = {}

    def define(self, key: str, url: str) -> None:
        """Record a definition. Redefinitions win, with a warning."""
        if key in self._keys:
            console.print(
                f"warning: duplicate citekey {key}",
                markup=False, highlight=False, soft_wrap=True,
            )
        self._keys[key] = url

    def resolve(self, citation_id: str) -> str:
        """URL for a citation id: the id itself if it is a URL, else its definition."""
        if is_url(citation_id):
            return citation_id
        url = self._keys.get(citation_id)
        if url is None:
            raise UnresolvedCitekeyError(citation_id)
        if not isinstance(url, str):
            raise UnresolvedCitekeyError(
                citation_id, f"url for {citation_id} is not a string: {url!r}",
            )
        return url

    def get(self, key: str) -> str | None:
        return self._keys.get(key)

    def as_dict(self) -> dict[str, str]:
        return dict(self._keys)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

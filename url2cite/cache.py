"""On-disk cache of fetched citations, keyed by URL.

The whole file is rewritten after every newly fetched URL, so a crash loses
at most the citation being fetched. Only one process may use a cache file at
a time.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Iterator

import orjson

from url2cite.fetch import BibRecord, fetch_bibliographic_record

CACHE_FILENAME = "citation-cache.json"
CACHE_INFO = (
    "Auto-generated by pandoc-url2cite. Feel free to modify, keys will never be overwritten."
)

Fetcher = Callable[[str], Awaitable[BibRecord]]


class BibliographicCache:
    """URL -> BibRecord mapping with fetch-or-reuse semantics.

    Usage:
        cache = BibliographicCache.load("citation-cache.json")
        await cache.ensure("https://example.com/article")
        references = cache.references()
    """

    def __init__(
        self,
        path: str | Path = CACHE_FILENAME,
        fetcher: Fetcher = fetch_bibliographic_record,
        info: str = CACHE_INFO,
    ):
        self.path = Path(path)
        self.fetcher = fetcher
        self.info = info
        self._urls: dict[str, BibRecord] = {}

    @classmethod
    def load(
        cls, path: str | Path = CACHE_FILENAME, fetcher: Fetcher | None = None,
    ) -> BibliographicCache:
        """Read the cache file; a missing or unreadable file gives an empty cache."""
        cache = cls(path) if fetcher is None else cls(path, fetcher)
        try:
            data = orjson.loads(cache.path.read_bytes())
            urls = {url: BibRecord.from_json(rec) for url, rec in data["urls"].items()}
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            return cache
        cache.info = data.get("_info", CACHE_INFO)
        cache._urls = urls
        return cache

    def __contains__(self, url: str) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def get(self, url: str) -> BibRecord | None:
        return self._urls.get(url)

    async def ensure(self, url: str) -> None:
        """Fetch ``url`` unless it is already cached, then persist the cache."""
        if url in self._urls:
            return
        self._urls[url] = await self.fetcher(url)
        self.save()

    def entries(self) -> list[tuple[str, BibRecord]]:
        """(url, record) pairs in the order they were first added."""
        return list(self._urls.items())

    def references(self) -> list[dict[str, Any]]:
        return [record.csl for record in self._urls.values()]

    def to_json(self) -> dict[str, Any]:
        return {
            "_info": self.info,
            "urls": {url: rec.to_json() for url, rec in self._urls.items()},
        }

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps(self.to_json(), option=orjson.OPT_INDENT_2))

"""Bibliographic record fetching: citoid bibtex over httpx, converted to CSL."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx
from rich.console import Console

from url2cite.csl import bibtex_to_csl
from url2cite.errors import FetchError, ParseError
from url2cite.utils import json_timestamp

console = Console(stderr=True)

# Wikipedia's citoid service runs the Zotero translators server-side and
# answers with bibtex. See https://www.mediawiki.org/wiki/Citoid/API
CITOID_BIBTEX_URL = "https://en.wikipedia.org/api/rest_v1/data/citation/bibtex"
DEFAULT_TIMEOUT = 30


@dataclass
class BibRecord:
    """A fetched citation as stored in the cache."""

    fetched: str
    bibtex: list[str]
    csl: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"fetched": self.fetched, "bibtex": self.bibtex, "csl": self.csl}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BibRecord:
        if not isinstance(data["bibtex"], list) or not isinstance(data["csl"], dict):
            raise TypeError("bibtex must be a list of lines and csl an object")
        return cls(
            fetched=data["fetched"],
            bibtex=list(data["bibtex"]),
            csl=data["csl"],
        )


def make_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={
            "User-Agent": "pandoc-url2cite",
            "Accept": "application/x-bibtex, text/plain;q=0.9, */*;q=0.8",
        },
    )


async def fetch_bibtex(
    url: str,
    client: httpx.AsyncClient,
    api_url: str = CITOID_BIBTEX_URL,
) -> str:
    """Ask the citation service for the bibtex of ``url``."""
    try:
        response = await client.get(f"{api_url.rstrip('/')}/{quote(url, safe='')}")
    except httpx.TransportError as e:
        raise FetchError(url, 0, str(e)) from e
    if not response.is_success:
        raise FetchError(url, response.status_code, response.text)
    return response.text


async def fetch_bibliographic_record(
    url: str,
    client: httpx.AsyncClient | None = None,
    api_url: str = CITOID_BIBTEX_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> BibRecord:
    """Fetch and convert the citation for ``url``.

    Raises FetchError, ParseError or CardinalityError.
    """
    console.print(
        f"fetching citation from url {url}", markup=False, highlight=False, soft_wrap=True,
    )
    if client is None:
        async with make_client(timeout) as own_client:
            bibtex = await fetch_bibtex(url, own_client, api_url)
    else:
        bibtex = await fetch_bibtex(url, client, api_url)

    try:
        csl = bibtex_to_csl(bibtex)
    except ParseError:
        console.print(
            "could not parse bibtex:", bibtex,
            markup=False, highlight=False, soft_wrap=True,
        )
        raise

    # the service generates useless ids; identity is the url
    csl["id"] = url
    csl.pop("_graph", None)

    return BibRecord(
        fetched=json_timestamp(),
        bibtex=bibtex.replace("\t", "   ").split("\n"),
        csl=csl,
    )

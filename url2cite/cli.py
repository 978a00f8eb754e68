"""url2cite CLI - pandoc filter entry point."""

from __future__ import annotations

import asyncio
from functools import partial

import click
from rich.console import Console

from url2cite.cache import CACHE_FILENAME, BibliographicCache
from url2cite.citations import Url2Cite
from url2cite.errors import Url2CiteError
from url2cite.fetch import (
    CITOID_BIBTEX_URL,
    DEFAULT_TIMEOUT,
    fetch_bibliographic_record,
    make_client,
)
from url2cite.nodes import Document
from url2cite.pandoc import decode_document, encode_document

console = Console(stderr=True)


@click.command()
@click.argument("fmt", metavar="FORMAT", required=False, default="")
@click.option("--cache", "cache_path", type=click.Path(dir_okay=False),
              default=CACHE_FILENAME, envvar="URL2CITE_CACHE", show_default=True,
              help="Citation cache file, relative to the working directory")
@click.option("--api-url", default=CITOID_BIBTEX_URL, envvar="URL2CITE_API_URL",
              show_default=True, help="Citation service returning bibtex for a URL")
@click.option("--timeout", default=DEFAULT_TIMEOUT, type=float, envvar="URL2CITE_TIMEOUT",
              show_default=True, help="HTTP timeout in seconds")
@click.option("-v", "--verbose", is_flag=True, help="Verbose progress output")
def main(fmt: str, cache_path: str, api_url: str, timeout: float, verbose: bool):
    """Resolve URL citations in a pandoc JSON document.

    Reads the document from stdin and writes it to stdout. FORMAT is the
    output format pandoc passes to filters.

    \b
    Examples:
        pandoc --filter pandoc-url2cite --citeproc in.md -o out.html
        pandoc -t json in.md | pandoc-url2cite html | pandoc -f json --citeproc
    """
    data = click.get_binary_stream("stdin").read()
    try:
        doc = decode_document(data)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise click.ClickException(f"input is not a pandoc JSON document: {e}") from e

    if verbose:
        console.print(f"[dim]Citation cache: {cache_path}[/dim]")

    try:
        doc = asyncio.run(_transform(doc, fmt, cache_path, api_url, timeout, verbose))
    except Url2CiteError as e:
        raise click.ClickException(str(e)) from e

    click.get_binary_stream("stdout").write(encode_document(doc))


async def _transform(
    doc: Document, fmt: str, cache_path: str, api_url: str,
    timeout: float, verbose: bool,
) -> Document:
    async with make_client(timeout) as client:
        fetcher = partial(fetch_bibliographic_record, client=client, api_url=api_url)
        cache = BibliographicCache.load(cache_path, fetcher=fetcher)
        if verbose:
            console.print(f"[dim]{len(cache)} cached citations[/dim]")
        return await Url2Cite(cache, verbose=verbose).transform(doc, fmt)


if __name__ == "__main__":
    main()

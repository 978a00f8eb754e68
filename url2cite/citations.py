"""Link-to-citation transform for pandoc documents.

Turns links and citekeys into citations backed by fetched bibliographic data:

    [@key]: https://example.com/article

    As shown in [@key], ...           ->  citation of https://example.com/article
    [text](https://example.com){.url2cite}  ->  [text [@https://example.com]](https://example.com)

and fills the ``references`` metadata with every cached CSL item so pandoc's
citeproc can render the bibliography.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console

from url2cite.cache import BibliographicCache
from url2cite.citekeys import CiteKeyTable
from url2cite.errors import ConfigError
from url2cite.nodes import (
    Citation,
    CitationDescriptor,
    Document,
    Hyperlink,
    Node,
    Paragraph,
    SoftBreak,
    Space,
    Text,
)
from url2cite.pandoc import filter_document, meta_to_python, python_to_meta
from url2cite.utils import is_url, title_has_token

console = Console(stderr=True)

META_KEY = "url2cite"
ALL_LINKS = "all-links"
OPT_IN = "url2cite"
OPT_OUT = "no-url2cite"


def link_mode(meta: dict) -> str | None:
    """The document's ``url2cite`` metadata value (absent or a string)."""
    value = meta_to_python(meta).get(META_KEY)
    if value is not None and not isinstance(value, str):
        raise ConfigError(
            f"unsupported value of {META_KEY}", {"type": type(value).__name__},
        )
    return value


def match_definition(content: list[Node]) -> tuple[str, str, int] | None:
    """Match ``[@key]: url`` at the head of paragraph content.

    Returns (key, url, number of nodes consumed) or None.
    """
    if len(content) < 3:
        return None
    cite, colon = content[0], content[1]
    if not (
        isinstance(cite, Citation)
        and len(cite.citations) == 1
        and not cite.citations[0].prefix
        and not cite.citations[0].suffix
        and isinstance(colon, Text)
        and colon.text == ":"
    ):
        return None
    pos = 3 if isinstance(content[2], Space) else 2
    if pos >= len(content) or not isinstance(content[pos], Text):
        return None
    return cite.citations[0].id, content[pos].text, pos + 1


def cite_link(link: Hyperlink) -> Hyperlink:
    """``[text](url)`` -> ``[text [@url]](url)``."""
    cite = Citation([CitationDescriptor(id=link.target.url)], [])
    return Hyperlink(link.attr, [*link.content, Space(), cite], link.target)


class Url2Cite:
    """Two-pass citation transform over a pandoc document.

    Citekey definitions are extracted from the whole document before any
    citation is resolved, so a key may be used before the paragraph that
    defines it.
    """

    def __init__(self, cache: BibliographicCache, verbose: bool = False):
        self.cache = cache
        self.citekeys = CiteKeyTable()
        self.verbose = verbose

    async def extract_citekeys(self, node: Node, fmt: str, meta: dict) -> Any:
        """Strip leading ``[@key]: url`` definitions from paragraphs."""
        if not isinstance(node, Paragraph):
            return None
        content = list(node.content)
        while (match := match_definition(content)) is not None:
            key, url, consumed = match
            self.citekeys.define(key, url)
            content = content[consumed:]
            if content and isinstance(content[0], SoftBreak):
                content = content[1:]
        return Paragraph(content)

    async def resolve_citations(self, node: Node, fmt: str, meta: dict) -> Any:
        """Resolve citation ids to URLs and add citations to marked links."""
        if isinstance(node, Citation):
            return await self._resolve_citation(node)
        if isinstance(node, Hyperlink):
            return await self._resolve_link(node, meta)
        return None

    async def _resolve_citation(self, node: Citation) -> Citation:
        citations = []
        for ct in node.citations:
            url = self.citekeys.resolve(ct.id)
            await self.cache.ensure(url)
            citations.append(CitationDescriptor(
                id=url,
                prefix=ct.prefix,
                suffix=ct.suffix,
                mode=ct.mode,
                note_num=ct.note_num,
                hash=ct.hash,
            ))
        return Citation(citations, node.content)

    async def _resolve_link(self, node: Hyperlink, meta: dict) -> Hyperlink | None:
        classes = node.attr.classes
        title = node.target.title
        enabled = (
            link_mode(meta) == ALL_LINKS
            or OPT_IN in classes
            or title_has_token(title, OPT_IN)
        )
        if not enabled:
            return None
        # disabling per link overrides enabling
        if OPT_OUT in classes or title_has_token(title, OPT_OUT):
            return None
        # relative links are kept as is
        if not is_url(node.target.url):
            return None
        await self.cache.ensure(node.target.url)
        return cite_link(node)

    def assemble_references(self, doc: Document) -> Document:
        """Put every cached CSL item into ``meta.references``.

        Unused entries are included too; citeproc ignores them.
        """
        console.print(
            f"got all {len(self.cache)} citations from URLs",
            markup=False, highlight=False, soft_wrap=True,
        )
        meta = dict(doc.meta)
        meta["references"] = python_to_meta(self.cache.references())
        return Document(doc.api_version, meta, doc.blocks)

    async def transform(self, doc: Document, fmt: str = "") -> Document:
        doc = await filter_document(doc, self.extract_citekeys, fmt)
        if self.verbose:
            console.print(f"[dim]found {len(self.citekeys)} citekey definitions[/dim]")
        doc = await filter_document(doc, self.resolve_citations, fmt)
        return self.assemble_references(doc)

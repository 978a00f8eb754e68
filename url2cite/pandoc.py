"""Pandoc JSON AST: decoding, encoding, traversal and metadata helpers."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import orjson

from url2cite.nodes import (
    NODE_TYPES,
    Attr,
    Citation,
    CitationDescriptor,
    Document,
    Hyperlink,
    Node,
    Other,
    Paragraph,
    SoftBreak,
    Space,
    Target,
    Text,
)

# handler(node, format, meta) -> replacement node, list of nodes, or None
Handler = Callable[[Node, str, dict], Awaitable[Optional[Any]]]


# -- decoding ---------------------------------------------------------------


def decode_document(data: bytes | str) -> Document:
    """Parse a pandoc JSON document."""
    raw = orjson.loads(data)
    return Document(
        api_version=raw.get("pandoc-api-version", []),
        meta=raw.get("meta", {}),
        blocks=[decode_node(b) for b in raw.get("blocks", [])],
    )


def decode_node(obj: dict) -> Node:
    tag = obj["t"]
    c = obj.get("c")

    if tag == "Para":
        return Paragraph(_decode_inlines(c))
    if tag == "Cite":
        citations, inlines = c
        return Citation(
            [_decode_citation(ct) for ct in citations],
            _decode_inlines(inlines),
        )
    if tag == "Link":
        (identifier, classes, kv), inlines, (url, title) = c
        return Hyperlink(
            Attr(identifier, list(classes), [list(p) for p in kv]),
            _decode_inlines(inlines),
            Target(url, title),
        )
    if tag == "Str":
        return Text(c)
    if tag == "Space":
        return Space()
    if tag == "SoftBreak":
        return SoftBreak()
    return Other(tag, None if "c" not in obj else _decode_any(c))


def _decode_inlines(items: list) -> list[Node]:
    return [decode_node(i) for i in items]


def _decode_citation(obj: dict) -> CitationDescriptor:
    return CitationDescriptor(
        id=obj["citationId"],
        prefix=_decode_inlines(obj.get("citationPrefix", [])),
        suffix=_decode_inlines(obj.get("citationSuffix", [])),
        mode=obj.get("citationMode", {}).get("t", "NormalCitation"),
        note_num=obj.get("citationNoteNum", 0),
        hash=obj.get("citationHash", 0),
    )


def _decode_any(value: Any) -> Any:
    if isinstance(value, list):
        return [_decode_any(v) for v in value]
    if isinstance(value, dict):
        if "t" in value:
            return decode_node(value)
        return {k: _decode_any(v) for k, v in value.items()}
    return value


# -- encoding ---------------------------------------------------------------


def encode_document(doc: Document) -> bytes:
    """Serialize a document back to pandoc JSON."""
    return orjson.dumps({
        "pandoc-api-version": doc.api_version,
        "meta": doc.meta,
        "blocks": [encode_node(b) for b in doc.blocks],
    })


def encode_node(node: Node) -> dict:
    if isinstance(node, Paragraph):
        return {"t": "Para", "c": _encode_inlines(node.content)}
    if isinstance(node, Citation):
        return {
            "t": "Cite",
            "c": [
                [_encode_citation(ct) for ct in node.citations],
                _encode_inlines(node.content),
            ],
        }
    if isinstance(node, Hyperlink):
        a = node.attr
        return {
            "t": "Link",
            "c": [
                [a.identifier, list(a.classes), [list(p) for p in a.attributes]],
                _encode_inlines(node.content),
                [node.target.url, node.target.title],
            ],
        }
    if isinstance(node, Text):
        return {"t": "Str", "c": node.text}
    if isinstance(node, Space):
        return {"t": "Space"}
    if isinstance(node, SoftBreak):
        return {"t": "SoftBreak"}
    if node.content is None:
        return {"t": node.tag}
    return {"t": node.tag, "c": _encode_any(node.content)}


def _encode_inlines(items: list[Node]) -> list[dict]:
    return [encode_node(i) for i in items]


def _encode_citation(ct: CitationDescriptor) -> dict:
    return {
        "citationId": ct.id,
        "citationPrefix": _encode_inlines(ct.prefix),
        "citationSuffix": _encode_inlines(ct.suffix),
        "citationMode": {"t": ct.mode},
        "citationNoteNum": ct.note_num,
        "citationHash": ct.hash,
    }


def _encode_any(value: Any) -> Any:
    if isinstance(value, NODE_TYPES):
        return encode_node(value)
    if isinstance(value, list):
        return [_encode_any(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode_any(v) for k, v in value.items()}
    return value


# -- traversal --------------------------------------------------------------


async def walk(value: Any, handler: Handler, fmt: str, meta: dict) -> Any:
    """Depth-first pre-order traversal applying ``handler`` to every node.

    A handler returning None leaves the node as is and the walk continues
    into its children. A returned node replaces the original and its
    children are walked instead; a returned list is spliced into the parent
    list. Returns the rewritten value; the input is not modified.
    """
    if isinstance(value, list):
        out = []
        for item in value:
            if isinstance(item, NODE_TYPES):
                replacement = await handler(item, fmt, meta)
                if replacement is None:
                    out.append(await _walk_children(item, handler, fmt, meta))
                elif isinstance(replacement, list):
                    for r in replacement:
                        out.append(await _walk_children(r, handler, fmt, meta))
                else:
                    out.append(await _walk_children(replacement, handler, fmt, meta))
            else:
                out.append(await walk(item, handler, fmt, meta))
        return out
    if isinstance(value, NODE_TYPES):
        return await _walk_children(value, handler, fmt, meta)
    if isinstance(value, dict):
        return {k: await walk(v, handler, fmt, meta) for k, v in value.items()}
    return value


async def _walk_children(node: Node, handler: Handler, fmt: str, meta: dict) -> Node:
    if isinstance(node, Paragraph):
        return Paragraph(await walk(node.content, handler, fmt, meta))
    if isinstance(node, Citation):
        citations = []
        for ct in node.citations:
            citations.append(CitationDescriptor(
                id=ct.id,
                prefix=await walk(ct.prefix, handler, fmt, meta),
                suffix=await walk(ct.suffix, handler, fmt, meta),
                mode=ct.mode,
                note_num=ct.note_num,
                hash=ct.hash,
            ))
        return Citation(citations, await walk(node.content, handler, fmt, meta))
    if isinstance(node, Hyperlink):
        return Hyperlink(
            node.attr, await walk(node.content, handler, fmt, meta), node.target,
        )
    if isinstance(node, Other) and node.content is not None:
        return Other(node.tag, await walk(node.content, handler, fmt, meta))
    return node


async def filter_document(doc: Document, handler: Handler, fmt: str) -> Document:
    """Run one full pass of ``handler`` over the document blocks."""
    blocks = await walk(doc.blocks, handler, fmt, doc.meta)
    return Document(doc.api_version, doc.meta, blocks)


# -- text and metadata ------------------------------------------------------


def stringify(value: Any) -> str:
    """Plain text of a node or list of nodes, spaces and breaks as ' '."""
    if isinstance(value, list):
        return "".join(stringify(v) for v in value)
    if isinstance(value, Text):
        return value.text
    if isinstance(value, (Space, SoftBreak)):
        return " "
    if isinstance(value, (Paragraph, Hyperlink)):
        return stringify(value.content)
    if isinstance(value, Citation):
        return stringify(value.content)
    if isinstance(value, Other):
        if value.tag == "LineBreak":
            return " "
        if value.tag in ("Code", "Math", "RawInline"):
            return value.content[-1]
        return stringify(value.content) if isinstance(value.content, list) else ""
    return ""


def meta_to_python(meta: dict) -> dict[str, Any]:
    """Flatten a pandoc metadata map into plain Python values."""
    return {k: _meta_value(v) for k, v in meta.items()}


def _meta_value(value: dict) -> Any:
    tag = value.get("t")
    c = value.get("c")
    if tag == "MetaMap":
        return meta_to_python(c)
    if tag == "MetaList":
        return [_meta_value(v) for v in c]
    if tag == "MetaBool":
        return bool(c)
    if tag == "MetaString":
        return c
    if tag == "MetaInlines":
        return stringify(_decode_inlines(c))
    if tag == "MetaBlocks":
        return " ".join(stringify(block) for block in _decode_inlines(c))
    raise ValueError(f"unknown metadata value type: {tag}")


def python_to_meta(value: Any) -> dict:
    """Convert a plain Python value (e.g. a CSL object) to a pandoc MetaValue.

    ``None`` has no metadata counterpart; such keys and list items are left out.
    """
    if isinstance(value, bool):
        return {"t": "MetaBool", "c": value}
    if isinstance(value, (str, int, float)):
        return {"t": "MetaString", "c": str(value)}
    if isinstance(value, (list, tuple)):
        return {"t": "MetaList", "c": [python_to_meta(v) for v in value if v is not None]}
    if isinstance(value, dict):
        return {"t": "MetaMap", "c": {
            k: python_to_meta(v) for k, v in value.items() if v is not None
        }}
    raise TypeError(f"cannot convert {type(value).__name__} to pandoc metadata")

"""Document tree node types.

Only the pandoc elements the filter inspects get their own class; everything
else is carried as ``Other`` so it can be walked and written back unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Attr:
    """Pandoc attribute triple: (identifier, classes, key-value pairs)."""

    identifier: str = ""
    classes: list[str] = field(default_factory=list)
    attributes: list[list[str]] = field(default_factory=list)


@dataclass(frozen=True)
class Target:
    url: str
    title: str = ""


@dataclass(frozen=True)
class CitationDescriptor:
    """One reference inside a Citation node."""

    id: str
    prefix: list[Node] = field(default_factory=list)
    suffix: list[Node] = field(default_factory=list)
    mode: str = "NormalCitation"
    note_num: int = 0
    hash: int = 0


@dataclass(frozen=True)
class Paragraph:
    content: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class Citation:
    citations: list[CitationDescriptor] = field(default_factory=list)
    content: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class Hyperlink:
    attr: Attr
    content: list[Node]
    target: Target


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class SoftBreak:
    pass


@dataclass(frozen=True)
class Space:
    pass


@dataclass(frozen=True)
class Other:
    """Any other pandoc element.

    ``content`` is the decoded ``c`` payload (nested lists, plain values and
    nodes), or None when the element has no payload.
    """

    tag: str
    content: Any = None


Node = Union[Paragraph, Citation, Hyperlink, Text, SoftBreak, Space, Other]
NODE_TYPES = (Paragraph, Citation, Hyperlink, Text, SoftBreak, Space, Other)


@dataclass
class Document:
    api_version: list[int]
    meta: dict[str, Any]
    blocks: list[Node]

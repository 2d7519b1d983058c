"""
Node types produced by the Markdown renderer.

Block nodes form the top level of a rendered body; inline nodes live inside
paragraphs, headings, links and emphasis.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union


# =============================================================================
# Inline Nodes
# =============================================================================


@dataclass
class Text:
    text: str


@dataclass
class Emphasis:
    children: List["Inline"] = field(default_factory=list)


@dataclass
class Strong:
    children: List["Inline"] = field(default_factory=list)


@dataclass
class InlineCode:
    code: str


@dataclass
class Link:
    href: str
    children: List["Inline"] = field(default_factory=list)
    title: Optional[str] = None


@dataclass
class Image:
    src: str
    alt: str = ""
    title: Optional[str] = None


@dataclass
class LineBreak:
    pass


@dataclass
class RawHtml:
    """HTML passed through from the source, inline or as a block."""

    html: str


Inline = Union[Text, Emphasis, Strong, InlineCode, Link, Image, LineBreak, RawHtml]


# =============================================================================
# Block Nodes
# =============================================================================


@dataclass
class Paragraph:
    children: List[Inline] = field(default_factory=list)


@dataclass
class Heading:
    level: int
    children: List[Inline] = field(default_factory=list)
    anchor: str = ""


@dataclass
class ListItem:
    children: List["Block"] = field(default_factory=list)


@dataclass
class ListBlock:
    ordered: bool = False
    items: List[ListItem] = field(default_factory=list)
    start: Optional[int] = None
    tight: bool = True


@dataclass
class CodeBlock:
    """Literal code; its text is never interpreted."""

    code: str
    language: Optional[str] = None


@dataclass
class MathBlock:
    tex: str


@dataclass
class BlockQuote:
    children: List["Block"] = field(default_factory=list)


@dataclass
class ThematicBreak:
    pass


Block = Union[
    Paragraph, Heading, ListBlock, CodeBlock, MathBlock, BlockQuote, ThematicBreak, RawHtml
]


def walk(nodes: List) -> Iterator:
    """Yield every node in the tree, depth first."""
    for node in nodes:
        yield node
        if isinstance(node, ListBlock):
            yield from walk(node.items)
        elif hasattr(node, "children"):
            yield from walk(node.children)


def plain_text(nodes: List) -> str:
    """Concatenate the human-readable text of inline nodes."""
    parts = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.text)
        elif isinstance(node, InlineCode):
            parts.append(node.code)
        elif isinstance(node, Image):
            parts.append(node.alt)
        elif isinstance(node, LineBreak):
            parts.append(" ")
        elif isinstance(node, (Emphasis, Strong, Link)):
            parts.append(plain_text(node.children))
    return "".join(parts)

"""
HTML serialization of rendered node trees.
"""

from typing import Iterable, List

from markupsafe import Markup, escape

from blogsmith.models import DocumentFlag
from blogsmith.rendering.nodes import (
    BlockQuote,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    InlineCode,
    LineBreak,
    Link,
    ListBlock,
    MathBlock,
    Paragraph,
    RawHtml,
    Strong,
    Text,
    ThematicBreak,
)

MERMAID_LANGUAGE = "mermaid"


class HtmlWriter:
    """Serialize block and inline nodes to HTML."""

    def __init__(self, flags: Iterable[DocumentFlag] = ()) -> None:
        self.flags = set(flags)

    def write(self, blocks: List) -> Markup:
        return Markup("\n".join(self._block(block) for block in blocks))

    def _block(self, node) -> str:
        if isinstance(node, Paragraph):
            return f"<p>{self._inlines(node.children)}</p>"

        if isinstance(node, Heading):
            anchor = f' id="{escape(node.anchor)}"' if node.anchor else ""
            return f"<h{node.level}{anchor}>{self._inlines(node.children)}</h{node.level}>"

        if isinstance(node, ListBlock):
            tag = "ol" if node.ordered else "ul"
            start = f' start="{node.start}"' if node.ordered and node.start not in (None, 1) else ""
            items = "\n".join(
                f"<li>{self._list_item(item.children, node.tight)}</li>" for item in node.items
            )
            return f"<{tag}{start}>\n{items}\n</{tag}>"

        if isinstance(node, CodeBlock):
            return self._code(node)

        if isinstance(node, MathBlock):
            return f'<div class="math">\\[{escape(node.tex)}\\]</div>'

        if isinstance(node, BlockQuote):
            inner = "\n".join(self._block(child) for child in node.children)
            return f"<blockquote>\n{inner}\n</blockquote>"

        if isinstance(node, ThematicBreak):
            return "<hr>"

        if isinstance(node, RawHtml):
            return node.html

        raise TypeError(f"Unsupported block node: {type(node).__name__}")

    def _list_item(self, children: List, tight: bool) -> str:
        if tight:
            parts = [
                self._inlines(child.children) if isinstance(child, Paragraph) else self._block(child)
                for child in children
            ]
            return "\n".join(parts)
        return "\n" + "\n".join(self._block(child) for child in children) + "\n"

    def _code(self, node: CodeBlock) -> str:
        code = escape(node.code)
        if node.language == MERMAID_LANGUAGE and DocumentFlag.MERMAID in self.flags:
            return f'<pre class="mermaid">{code}</pre>'
        if node.language:
            return f'<pre><code class="language-{escape(node.language)}">{code}</code></pre>'
        return f"<pre><code>{code}</code></pre>"

    def _inlines(self, nodes: List) -> str:
        return "".join(self._inline(node) for node in nodes)

    def _inline(self, node) -> str:
        if isinstance(node, Text):
            return str(escape(node.text))
        if isinstance(node, Emphasis):
            return f"<em>{self._inlines(node.children)}</em>"
        if isinstance(node, Strong):
            return f"<strong>{self._inlines(node.children)}</strong>"
        if isinstance(node, InlineCode):
            return f"<code>{escape(node.code)}</code>"
        if isinstance(node, Link):
            title = f' title="{escape(node.title)}"' if node.title else ""
            return f'<a href="{escape(node.href)}"{title}>{self._inlines(node.children)}</a>'
        if isinstance(node, Image):
            title = f' title="{escape(node.title)}"' if node.title else ""
            return f'<img src="{escape(node.src)}" alt="{escape(node.alt)}"{title}>'
        if isinstance(node, LineBreak):
            return "<br>"
        if isinstance(node, RawHtml):
            return node.html
        raise TypeError(f"Unsupported inline node: {type(node).__name__}")


def render_html(blocks: List, flags: Iterable[DocumentFlag] = ()) -> Markup:
    """Serialize blocks with a one-off writer."""
    return HtmlWriter(flags).write(blocks)

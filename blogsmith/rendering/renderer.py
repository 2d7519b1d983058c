"""
Markdown body rendering into node trees.

Fenced code blocks (and, for math-enabled documents, ``$$`` blocks) are cut
out of the body first and kept verbatim. The prose between them is parsed
with Python-Markdown and its element tree converted into the node types of
:mod:`blogsmith.rendering.nodes`.
"""

import html
import re
import xml.etree.ElementTree as etree
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import markdown
from markdown.treeprocessors import Treeprocessor
from markdown.util import AMP_SUBSTITUTE, HTML_PLACEHOLDER_RE

from blogsmith.content.preprocessor import TextPreprocessor
from blogsmith.models import DocumentFlag, TocEntry
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
    ListItem,
    MathBlock,
    Paragraph,
    RawHtml,
    Strong,
    Text,
    ThematicBreak,
    plain_text,
    walk,
)
from blogsmith.utils.errors import ParseError
from blogsmith.utils.logging import get_logger

logger = get_logger(__name__)

FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
MATH_DELIMITER = "$$"
ATTRIBUTE_LINE_RE = re.compile(r"^\s*\{:.*\}\s*$")

HEADING_TAGS = {f"h{level}" for level in range(1, 7)}
INLINE_TAGS = {"em", "strong", "code", "a", "img", "br"}


class _TreeCapture(Treeprocessor):
    """Keep a reference to the finished element tree."""

    def __init__(self, md: markdown.Markdown) -> None:
        super().__init__(md)
        self.root: Optional[etree.Element] = None

    def run(self, root: etree.Element) -> None:
        self.root = root
        return None


class MarkdownRenderer:
    """Convert Markdown bodies into block node trees."""

    def __init__(self, extensions: Optional[Iterable[str]] = None) -> None:
        """
        Initialize the renderer.

        Args:
            extensions: Python-Markdown extensions for prose (default: sane_lists)
        """
        self._md = markdown.Markdown(extensions=list(extensions or ["sane_lists"]))
        self._md.treeprocessors.deregister("prettify", strict=False)
        self._capture = _TreeCapture(self._md)
        # Lowest priority, so the tree is captured after inline processing
        self._md.treeprocessors.register(self._capture, "blogsmith_capture", -100)

    def render(
        self,
        body: str,
        flags: Iterable[DocumentFlag] = (),
        first_line: int = 1,
        path: Optional[Path] = None,
    ) -> List:
        """
        Render a Markdown body.

        Args:
            body: Markdown text
            flags: Document flags; ``math`` enables ``$$`` blocks
            first_line: Source line of the body's first line, for diagnostics
            path: Source file, for diagnostics

        Returns:
            List of block nodes

        Raises:
            ParseError: If a code or math block is never closed
        """
        flags = set(flags)
        blocks: List = []

        for kind, payload in self._segments(body, flags, first_line, path):
            if kind == "code":
                code, language = payload
                blocks.append(CodeBlock(code=code, language=language))
            elif kind == "math":
                blocks.append(MathBlock(tex=payload))
            else:
                blocks.extend(self._render_prose(payload))

        self._assign_anchors(blocks)
        return blocks

    # -------------------------------------------------------------------------
    # Segmentation
    # -------------------------------------------------------------------------

    def _segments(
        self,
        body: str,
        flags: set,
        first_line: int,
        path: Optional[Path],
    ) -> List[Tuple[str, object]]:
        """Split the body into ('prose', text), ('code', (code, lang)) and ('math', tex)."""
        lines = body.split("\n")
        segments: List[Tuple[str, object]] = []
        prose: List[str] = []
        math_enabled = DocumentFlag.MATH in flags

        def flush() -> None:
            if prose:
                segments.append(("prose", "\n".join(prose)))
                prose.clear()

        index = 0
        while index < len(lines):
            line = lines[index]
            match = FENCE_RE.match(line)

            if match and not (match.group("fence")[0] == "`" and "`" in match.group("info")):
                flush()
                end = self._find_fence_end(lines, index, match.group("fence"))
                if end is None:
                    raise ParseError(
                        f"unterminated code block (opened with {match.group('fence')})",
                        path=path,
                        line=first_line + index,
                    )
                indent = len(match.group("indent"))
                code = "\n".join(_dedent(text, indent) for text in lines[index + 1 : end])
                info = match.group("info").strip()
                language = info.split()[0].strip("{}.") if info else None
                segments.append(("code", (code, language or None)))
                index = end + 1
                continue

            stripped = line.strip()
            if math_enabled and stripped.startswith(MATH_DELIMITER):
                inner = stripped[2:-2]
                if (
                    len(stripped) > 4
                    and stripped.endswith(MATH_DELIMITER)
                    and MATH_DELIMITER not in inner
                ):
                    flush()
                    segments.append(("math", inner.strip()))
                    index += 1
                    continue
                # Inline $$...$$ followed by text stays prose
                if MATH_DELIMITER in stripped[2:]:
                    prose.append(line)
                    index += 1
                    continue
                flush()
                end = next(
                    (i for i in range(index + 1, len(lines)) if lines[i].strip() == MATH_DELIMITER),
                    None,
                )
                if end is None:
                    raise ParseError(
                        "unterminated math block (opened with $$)",
                        path=path,
                        line=first_line + index,
                    )
                first = stripped[2:].strip()
                tex_lines = ([first] if first else []) + lines[index + 1 : end]
                segments.append(("math", "\n".join(tex_lines)))
                index = end + 1
                continue

            if not ATTRIBUTE_LINE_RE.match(line):
                prose.append(line)
            index += 1

        flush()
        return segments

    @staticmethod
    def _find_fence_end(lines: List[str], start: int, fence: str) -> Optional[int]:
        closing = re.compile(rf"^[ \t]*{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")
        for index in range(start + 1, len(lines)):
            if closing.match(lines[index]):
                return index
        return None

    # -------------------------------------------------------------------------
    # Prose conversion
    # -------------------------------------------------------------------------

    def _render_prose(self, text: str) -> List:
        if not text.strip():
            return []
        self._md.reset()
        self._capture.root = None
        self._md.convert(text)
        if self._capture.root is None:
            return []
        return self._blocks(self._capture.root)

    def _blocks(self, element: etree.Element) -> List:
        """Convert the children of a container element into block nodes."""
        blocks: List = []
        run: List = []

        def flush() -> None:
            nodes = _trim(run)
            if nodes:
                blocks.append(Paragraph(children=nodes))
            run.clear()

        if element.text:
            run.extend(self._text(element.text))
        for child in element:
            if child.tag in INLINE_TAGS:
                run.extend(self._inline(child))
            else:
                flush()
                blocks.extend(self._block(child))
            if child.tail:
                run.extend(self._text(child.tail))
        flush()
        return blocks

    def _block(self, element: etree.Element) -> List:
        tag = element.tag

        if tag == "p":
            placeholder = self._block_html(element)
            if placeholder is not None:
                return [placeholder]
            children = _trim(self._inlines(element))
            return [Paragraph(children=children)] if children else []

        if tag in HEADING_TAGS:
            return [Heading(level=int(tag[1]), children=_trim(self._inlines(element)))]

        if tag in ("ul", "ol"):
            items = [ListItem(children=self._blocks(li)) for li in element if li.tag == "li"]
            tight = not any(child.tag == "p" for li in element for child in li)
            start = element.get("start")
            return [
                ListBlock(
                    ordered=tag == "ol",
                    items=items,
                    start=int(start) if start and start.isdigit() else None,
                    tight=tight,
                )
            ]

        if tag == "pre":
            code = element.find("code")
            source = code if code is not None else element
            language = None
            for css_class in (source.get("class") or "").split():
                if css_class.startswith("language-"):
                    language = css_class[len("language-") :]
            # Python-Markdown stores code text with &, < and > escaped
            text = html.unescape(source.text or "")
            return [CodeBlock(code=text.rstrip("\n"), language=language)]

        if tag == "blockquote":
            return [BlockQuote(children=self._blocks(element))]

        if tag == "hr":
            return [ThematicBreak()]

        return [RawHtml(html=etree.tostring(element, encoding="unicode", method="html"))]

    def _block_html(self, paragraph: etree.Element) -> Optional[RawHtml]:
        """Return the stashed HTML when a paragraph is only a block placeholder."""
        if len(paragraph) or not paragraph.text:
            return None
        match = HTML_PLACEHOLDER_RE.fullmatch(paragraph.text.strip())
        if not match:
            return None
        return RawHtml(html=self._stashed(int(match.group(1))))

    def _inlines(self, element: etree.Element) -> List:
        nodes: List = []
        if element.text:
            nodes.extend(self._text(element.text))
        for child in element:
            nodes.extend(self._inline(child))
            if child.tail:
                nodes.extend(self._text(child.tail))
        return nodes

    def _inline(self, element: etree.Element) -> List:
        tag = element.tag
        if tag == "em":
            return [Emphasis(children=self._inlines(element))]
        if tag == "strong":
            return [Strong(children=self._inlines(element))]
        if tag == "code":
            return [InlineCode(code=html.unescape(element.text or ""))]
        if tag == "a":
            return [
                Link(
                    href=self._attribute(element, "href"),
                    title=element.get("title"),
                    children=self._inlines(element),
                )
            ]
        if tag == "img":
            return [
                Image(
                    src=self._attribute(element, "src"),
                    alt=self._attribute(element, "alt"),
                    title=element.get("title"),
                )
            ]
        if tag == "br":
            return [LineBreak()]
        return [RawHtml(html=etree.tostring(element, encoding="unicode", method="html"))]

    def _text(self, text: str) -> List:
        """Split text on raw-HTML placeholders."""
        nodes: List = []
        position = 0
        for match in HTML_PLACEHOLDER_RE.finditer(text):
            if match.start() > position:
                nodes.append(Text(text=_clean(text[position : match.start()])))
            nodes.append(RawHtml(html=self._stashed(int(match.group(1)))))
            position = match.end()
        if position < len(text):
            nodes.append(Text(text=_clean(text[position:])))
        return nodes

    def _stashed(self, index: int) -> str:
        blocks = self._md.htmlStash.rawHtmlBlocks
        if index >= len(blocks):
            return ""
        block = blocks[index]
        if isinstance(block, str):
            return block
        return etree.tostring(block, encoding="unicode", method="html")

    @staticmethod
    def _attribute(element: etree.Element, name: str) -> str:
        return _clean(element.get(name) or "")

    # -------------------------------------------------------------------------
    # Headings
    # -------------------------------------------------------------------------

    @staticmethod
    def _assign_anchors(blocks: List) -> None:
        used = set()
        for node in walk(blocks):
            if not isinstance(node, Heading):
                continue
            base = TextPreprocessor.slugify(plain_text(node.children))
            candidate, suffix = base, 0
            while candidate in used:
                suffix += 1
                candidate = f"{base}-{suffix}"
            used.add(candidate)
            node.anchor = candidate


def table_of_contents(blocks: List, min_level: int = 2, max_level: int = 3) -> List[TocEntry]:
    """List top-level headings within the given level range."""
    return [
        TocEntry(level=block.level, title=plain_text(block.children), anchor=block.anchor)
        for block in blocks
        if isinstance(block, Heading) and min_level <= block.level <= max_level
    ]


def _dedent(line: str, indent: int) -> str:
    """Remove up to ``indent`` leading whitespace characters."""
    count = 0
    while count < indent and count < len(line) and line[count] in " \t":
        count += 1
    return line[count:]


def _clean(text: str) -> str:
    if AMP_SUBSTITUTE in text:
        return html.unescape(text.replace(AMP_SUBSTITUTE, "&"))
    return text


def _trim(nodes: List) -> List:
    """Drop whitespace-only edges of an inline run."""
    nodes = list(nodes)
    while nodes and isinstance(nodes[0], Text) and not nodes[0].text.strip():
        nodes.pop(0)
    while nodes and isinstance(nodes[-1], Text) and not nodes[-1].text.strip():
        nodes.pop()
    if nodes and isinstance(nodes[0], Text):
        nodes[0] = Text(text=nodes[0].text.lstrip())
    if nodes and isinstance(nodes[-1], Text):
        nodes[-1] = Text(text=nodes[-1].text.rstrip())
    return nodes


def create_markdown_renderer() -> MarkdownRenderer:
    """Create a Markdown renderer with default extensions."""
    return MarkdownRenderer()

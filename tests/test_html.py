"""
Tests for HTML serialization of node trees.
"""

import html
import re

import pytest

from blogsmith.models import DocumentFlag
from blogsmith.rendering.html import HtmlWriter, render_html
from blogsmith.rendering.nodes import (
    BlockQuote,
    CodeBlock,
    Heading,
    Image,
    InlineCode,
    Link,
    ListBlock,
    ListItem,
    MathBlock,
    Paragraph,
    RawHtml,
    Text,
    ThematicBreak,
)
from blogsmith.rendering.renderer import MarkdownRenderer


class TestHtmlWriter:
    """Test the HtmlWriter class."""

    def test_text_is_escaped(self):
        """Test that text content is HTML-escaped."""
        output = render_html([Paragraph(children=[Text("a < b & c")])])

        assert output == "<p>a &lt; b &amp; c</p>"

    def test_heading_anchor(self):
        """Test that headings carry their anchor as id."""
        output = render_html([Heading(level=2, children=[Text("Intro")], anchor="intro")])

        assert output == '<h2 id="intro">Intro</h2>'

    def test_tight_list(self):
        """Test that tight list items are written without paragraphs."""
        block = ListBlock(
            items=[
                ListItem(children=[Paragraph(children=[Text("one")])]),
                ListItem(children=[Paragraph(children=[Text("two")])]),
            ]
        )

        assert render_html([block]) == "<ul>\n<li>one</li>\n<li>two</li>\n</ul>"

    def test_loose_ordered_list(self):
        """Test loose ordered lists and their start number."""
        block = ListBlock(
            ordered=True,
            start=3,
            tight=False,
            items=[ListItem(children=[Paragraph(children=[Text("three")])])],
        )

        assert render_html([block]) == '<ol start="3">\n<li>\n<p>three</p>\n</li>\n</ol>'

    def test_code_block_escaped(self):
        """Test that code is escaped but otherwise untouched."""
        output = render_html([CodeBlock(code='<div class="x">&</div>', language="html")])

        assert output == (
            '<pre><code class="language-html">'
            "&lt;div class=&#34;x&#34;&gt;&amp;&lt;/div&gt;"
            "</code></pre>"
        )

    def test_code_block_without_language(self):
        assert render_html([CodeBlock(code="x")]) == "<pre><code>x</code></pre>"

    def test_mermaid_flag(self):
        """Test that mermaid code becomes a diagram only with the flag."""
        block = CodeBlock(code="graph TD; A-->B", language="mermaid")

        with_flag = HtmlWriter([DocumentFlag.MERMAID]).write([block])
        without_flag = HtmlWriter().write([block])

        assert with_flag == '<pre class="mermaid">graph TD; A--&gt;B</pre>'
        assert 'class="language-mermaid"' in without_flag

    def test_math_block(self):
        output = render_html([MathBlock(tex="a < b")])

        assert output == '<div class="math">\\[a &lt; b\\]</div>'

    def test_inline_nodes(self):
        """Test links, images and inline code."""
        output = render_html(
            [
                Paragraph(
                    children=[
                        Link(href="/a?x=1&y=2", children=[Text("link")], title="T"),
                        Image(src="/i.png", alt='say "hi"'),
                        InlineCode(code="<br>"),
                    ]
                )
            ]
        )

        assert output == (
            '<p><a href="/a?x=1&amp;y=2" title="T">link</a>'
            '<img src="/i.png" alt="say &#34;hi&#34;">'
            "<code>&lt;br&gt;</code></p>"
        )

    def test_blockquote_rule_and_raw_html(self):
        """Test container blocks and passthrough HTML."""
        output = render_html(
            [
                BlockQuote(children=[Paragraph(children=[Text("q")])]),
                ThematicBreak(),
                RawHtml(html="<aside>raw</aside>"),
            ]
        )

        assert output == "<blockquote>\n<p>q</p>\n</blockquote>\n<hr>\n<aside>raw</aside>"

    def test_unsupported_node(self):
        with pytest.raises(TypeError):
            render_html([object()])


class TestRenderedCode:
    """Test code survival from Markdown source to HTML."""

    def test_code_round_trips_through_html(self):
        """Test that unescaping the written code gives back the source code."""
        code = 'if (a < b && c > "d") {\n\treturn `${x}`;\n}\n\n// *done*'
        blocks = MarkdownRenderer().render(f"Text\n\n```js\n{code}\n```\n")

        output = str(render_html(blocks))

        match = re.search(r'<code class="language-js">(.*?)</code>', output, re.S)
        assert match is not None
        assert html.unescape(match.group(1)) == code

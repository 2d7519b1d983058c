"""
Tests for slugs, excerpts and reading statistics.
"""

import pytest

from blogsmith.config import Settings
from blogsmith.content.preprocessor import TextPreprocessor, create_text_preprocessor
from blogsmith.rendering.nodes import CodeBlock, Heading, Paragraph, Text


class TestTextPreprocessor:
    """Test the TextPreprocessor class."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Hello World", "hello-world"),
            ("React: Rendering  Performance!", "react-rendering-performance"),
            ("Café déjà vu", "cafe-deja-vu"),
            ("snake_case and--dashes", "snake-case-and-dashes"),
            ("中文 标题", "中文-标题"),
            ("C++", "c"),
        ],
    )
    def test_slugify(self, text, expected):
        assert TextPreprocessor.slugify(text) == expected

    def test_slugify_default(self):
        """Test the fallback slug for text without word characters."""
        assert TextPreprocessor.slugify("!!!") == "section"
        assert TextPreprocessor.slugify("", default="post") == "post"

    def test_word_count_skips_code(self):
        """Test that code blocks do not count as words."""
        blocks = [
            Heading(level=2, children=[Text("Two words")]),
            Paragraph(children=[Text("three more words")]),
            CodeBlock(code="lots of code words here"),
        ]

        assert TextPreprocessor().word_count(blocks) == 5

    def test_reading_minutes(self):
        preprocessor = TextPreprocessor(words_per_minute=100)

        assert preprocessor.reading_minutes(0) == 1
        assert preprocessor.reading_minutes(100) == 1
        assert preprocessor.reading_minutes(101) == 2

    def test_excerpt_prefers_description(self):
        blocks = [Paragraph(children=[Text("Body text")])]

        assert TextPreprocessor().excerpt(blocks, "  A   summary ") == "A summary"

    def test_excerpt_first_paragraph(self):
        """Test that the excerpt skips non-paragraph blocks."""
        blocks = [
            Heading(level=1, children=[Text("Title")]),
            CodeBlock(code="x"),
            Paragraph(children=[Text("First   paragraph.")]),
            Paragraph(children=[Text("Second.")]),
        ]

        assert TextPreprocessor().excerpt(blocks) == "First paragraph."

    def test_truncate_at_word_boundary(self):
        preprocessor = TextPreprocessor(excerpt_length=20)

        assert preprocessor.truncate("short") == "short"
        assert preprocessor.truncate("one two three four five six") == "one two three four..."

    def test_factory_uses_settings(self):
        preprocessor = create_text_preprocessor(Settings(excerpt_length=50, words_per_minute=10))

        assert preprocessor.excerpt_length == 50
        assert preprocessor.words_per_minute == 10

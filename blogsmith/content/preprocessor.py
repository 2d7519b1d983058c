"""
Text helpers for slugs, excerpts and reading statistics.

This module handles the small text transformations shared by the renderer
and the site builder: turning titles and terms into URL slugs, deriving a
plain-text excerpt from rendered nodes and estimating reading time.
"""

import math
import re
import unicodedata
from typing import List, Optional

from blogsmith.rendering.nodes import (
    BlockQuote,
    Heading,
    ListBlock,
    Paragraph,
    plain_text,
)


class TextPreprocessor:
    """Derive slugs and summary text from document content."""

    def __init__(self, excerpt_length: int = 200, words_per_minute: int = 200) -> None:
        """
        Initialize the text preprocessor.

        Args:
            excerpt_length: Maximum excerpt length in characters
            words_per_minute: Reading speed used for reading-time estimates
        """
        self.excerpt_length = excerpt_length
        self.words_per_minute = words_per_minute

    @staticmethod
    def slugify(text: str, default: str = "section") -> str:
        """
        Turn text into a lowercase, hyphen-separated URL slug.

        Accented letters are folded to ASCII; other non-ASCII word characters
        (CJK, Cyrillic, ...) are kept as-is.
        """
        text = unicodedata.normalize("NFKD", text)
        text = "".join(char for char in text if not unicodedata.combining(char))
        text = text.lower()
        text = re.sub(r"[^\w\s-]", "", text)
        text = re.sub(r"[\s_-]+", "-", text)
        return text.strip("-") or default

    @staticmethod
    def normalize_whitespace(text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()

    def document_text(self, blocks: List) -> str:
        """Plain text of all prose blocks; code and math blocks are left out."""
        parts = []
        for block in blocks:
            if isinstance(block, (Paragraph, Heading)):
                parts.append(plain_text(block.children))
            elif isinstance(block, BlockQuote):
                parts.append(self.document_text(block.children))
            elif isinstance(block, ListBlock):
                for item in block.items:
                    parts.append(self.document_text(item.children))
        return self.normalize_whitespace(" ".join(parts))

    def word_count(self, blocks: List) -> int:
        return len(self.document_text(blocks).split())

    def reading_minutes(self, word_count: int) -> int:
        return max(1, math.ceil(word_count / self.words_per_minute))

    def excerpt(self, blocks: List, description: Optional[str] = None) -> str:
        """
        Summary text for listings and the feed.

        Uses the description when given, otherwise the first paragraph,
        cut at a word boundary to ``excerpt_length`` characters.
        """
        if description:
            text = self.normalize_whitespace(description)
        else:
            text = ""
            for block in blocks:
                if isinstance(block, Paragraph):
                    text = self.normalize_whitespace(plain_text(block.children))
                    if text:
                        break
        return self.truncate(text)

    def truncate(self, text: str) -> str:
        if len(text) <= self.excerpt_length:
            return text
        cut = text[: self.excerpt_length].rsplit(" ", 1)[0]
        return cut.rstrip(".,;:!?") + "..."


def create_text_preprocessor(settings=None) -> TextPreprocessor:
    """Create a text preprocessor from settings."""
    if settings is None:
        return TextPreprocessor()
    return TextPreprocessor(
        excerpt_length=settings.excerpt_length,
        words_per_minute=settings.words_per_minute,
    )

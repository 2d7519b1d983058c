"""
Core data models for the blogsmith site generator.

This module defines the Pydantic models passed between the loader, the
metadata parser, the renderer and the site builder.
"""

from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class HeaderStyle(str, Enum):
    """How the metadata block is delimited in the source file."""

    FENCED = "fenced"  # between "---" lines
    PLAIN = "plain"  # "key: value" lines ended by a blank line


class DocumentFlag(str, Enum):
    """Optional per-document rendering switches."""

    MATH = "math"
    MERMAID = "mermaid"
    TOC = "toc"
    PIN = "pin"


# =============================================================================
# Source Models
# =============================================================================


class RawDocument(BaseModel):
    """A source file split into its header block and body."""

    model_config = ConfigDict(frozen=True)

    source_path: Path = Field(..., description="Path of the source file")
    slug: str = Field(..., min_length=1, description="Slug taken from the filename")
    filename_date: date = Field(..., description="Date prefix of the filename")
    header_text: str = Field(..., description="Metadata block without delimiters")
    header_line: int = Field(..., ge=1, description="Line of the first header entry")
    header_style: HeaderStyle = Field(..., description="Metadata block delimiting style")
    body: str = Field("", description="Raw Markdown body")
    body_line: int = Field(..., ge=1, description="Line where the body starts")


# =============================================================================
# Document Models
# =============================================================================


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class DocumentHeader(BaseModel):
    """Parsed and validated metadata block."""

    title: str = Field(..., min_length=1, description="Document title")
    author: str = Field("", description="Author name, empty for the site author")
    published_at: datetime = Field(..., description="Timezone-aware publish timestamp")
    categories: List[str] = Field(default_factory=list, description="Categories")
    tags: List[str] = Field(default_factory=list, description="Tags")
    flags: Set[DocumentFlag] = Field(default_factory=set, description="Rendering flags")
    description: Optional[str] = Field(None, description="Summary used as the excerpt")
    published: bool = Field(True, description="False for drafts")
    extra: Dict[str, Any] = Field(
        default_factory=dict,
        description="Unknown header keys, kept but ignored by rendering",
    )
    source_keys: List[str] = Field(
        default_factory=list,
        description="Header keys in their original order and spelling",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title cannot be blank")
        return v.strip()

    @field_validator("published_at")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("published_at must carry a timezone offset")
        return v

    @field_validator("categories", "tags")
    @classmethod
    def dedupe_terms(cls, v: List[str]) -> List[str]:
        return _unique(v)

    def has_flag(self, flag: DocumentFlag) -> bool:
        return flag in self.flags


class Document(DocumentHeader):
    """A parsed document: header fields plus its body and origin."""

    slug: str = Field(..., min_length=1, description="URL slug")
    source_path: Path = Field(..., description="Path of the source file")
    body: str = Field("", description="Raw Markdown body")
    body_line: int = Field(1, ge=1, description="Line where the body starts")

    @property
    def sort_key(self) -> tuple:
        """Secondary ordering used to break publish-time ties."""
        return (self.title.casefold(), self.slug)


class TocEntry(BaseModel):
    """One heading in a table of contents."""

    level: int = Field(..., ge=1, le=6)
    title: str
    anchor: str


class RenderedDocument(BaseModel):
    """A document together with its rendered output."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    document: Document
    blocks: List[Any] = Field(default_factory=list, description="Block node tree")
    html: str = Field("", description="Rendered body HTML")
    toc: List[TocEntry] = Field(default_factory=list)
    excerpt: str = ""
    word_count: int = Field(0, ge=0)
    reading_minutes: int = Field(1, ge=1)
    url: str = ""

    @property
    def slug(self) -> str:
        return self.document.slug


class BuildResult(BaseModel):
    """Summary of a finished build."""

    output_dir: Path
    documents: List[RenderedDocument] = Field(default_factory=list)
    pages_written: List[Path] = Field(default_factory=list)
    duration_seconds: float = Field(0.0, ge=0.0)

    @property
    def document_count(self) -> int:
        return len(self.documents)

"""
Metadata block parsing and validation.

This module turns the raw header block of a post into a validated
``DocumentHeader``. Fenced (``---``) headers are read as YAML with every
scalar kept as a string; plain headers are read as ``key: value`` lines.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from blogsmith.models import Document, DocumentFlag, DocumentHeader, HeaderStyle, RawDocument
from blogsmith.utils.errors import MalformedDocument, ParseError, ValidationError
from blogsmith.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M%z",
]
TIMESTAMP_OUTPUT_FORMAT = "%Y-%m-%d %H:%M:%S %z"

TRUE_VALUES = {"true", "yes", "on", "1", "y"}
FALSE_VALUES = {"false", "no", "off", "0", "n", ""}

REQUIRED_KEYS = ("title", "date")
TERM_KEYS = {"categories": ("categories", "category"), "tags": ("tags", "tag")}
KNOWN_KEYS = {"title", "date", "author", "description", "published"}
KNOWN_KEYS.update(alias for aliases in TERM_KEYS.values() for alias in aliases)
KNOWN_KEYS.update(flag.value for flag in DocumentFlag)

TOP_LEVEL_KEY_RE = re.compile(r"^(?P<key>[^\s#:][^:]*?)\s*:(\s|$)")


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a publish timestamp that carries a timezone offset.

    Accepts ``2022-08-28 20:30:00 +0010``, ``+00:10`` offsets, an ISO ``T``
    separator and timestamps without seconds.

    Raises:
        ValueError: If the value does not match or has no offset
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("timestamp has no timezone offset")
        return value

    text = " ".join(str(value).split())
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(
        f"'{value}' is not a timestamp with timezone offset "
        "(expected e.g. '2022-08-28 20:30:00 +0010')"
    )


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_OUTPUT_FORMAT)


def parse_bool(value: Any) -> bool:
    """Interpret a header value as a boolean."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"'{value}' is not a boolean")


def parse_terms(value: Any) -> List[str]:
    """Read categories/tags from a list or a comma/space separated string."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    if "," in text:
        items = text.split(",")
    else:
        items = text.split()
    return [item.strip().strip("'\"") for item in items if item.strip()]


class MetadataParser:
    """Parse and validate metadata blocks."""

    def parse(self, raw: RawDocument) -> DocumentHeader:
        """
        Parse the header block of a raw document.

        Args:
            raw: Document split by the loader

        Returns:
            Validated DocumentHeader

        Raises:
            ValidationError: If ``title`` or ``date`` is missing or invalid
            ParseError: If the date or the header syntax cannot be parsed
            MalformedDocument: If the header is not a key/value mapping
        """
        with LogContext(document=str(raw.source_path)):
            if raw.header_style == HeaderStyle.FENCED:
                mapping = self._load_yaml(raw)
            else:
                mapping = self._load_plain(raw)
            key_lines = self._key_lines(raw)
            return self._build_header(mapping, key_lines, raw)

    def build_document(self, raw: RawDocument) -> Document:
        """Parse the header and attach body, slug and source path."""
        header = self.parse(raw)

        if header.published_at.date() != raw.filename_date:
            logger.warning(
                f"{raw.source_path.name}: header date {header.published_at.date()} "
                f"differs from filename date {raw.filename_date}; using the header date"
            )

        return Document(
            **header.model_dump(),
            slug=raw.slug,
            source_path=raw.source_path,
            body=raw.body,
            body_line=raw.body_line,
        )

    # -------------------------------------------------------------------------
    # Header loading
    # -------------------------------------------------------------------------

    def _load_yaml(self, raw: RawDocument) -> Dict[str, Any]:
        if not raw.header_text.strip():
            return {}
        try:
            data = yaml.load(raw.header_text, Loader=yaml.BaseLoader)
        except yaml.MarkedYAMLError as e:
            line = raw.header_line + e.problem_mark.line if e.problem_mark else raw.header_line
            raise ParseError(
                f"invalid metadata block: {e.problem or e}", path=raw.source_path, line=line
            )
        except yaml.YAMLError as e:
            raise ParseError(
                f"invalid metadata block: {e}", path=raw.source_path, line=raw.header_line
            )

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise MalformedDocument(
                "metadata block must be a set of 'key: value' entries",
                path=raw.source_path,
                line=raw.header_line,
            )
        return {str(key): value for key, value in data.items()}

    def _load_plain(self, raw: RawDocument) -> Dict[str, Any]:
        mapping: Dict[str, Any] = {}
        last_key: Optional[str] = None

        for offset, line in enumerate(raw.header_text.split("\n")):
            if line[:1].isspace() and last_key is not None:
                mapping[last_key] = f"{mapping[last_key]} {line.strip()}".strip()
                continue
            if ":" not in line:
                raise ParseError(
                    f"expected 'key: value', got '{line.strip()}'",
                    path=raw.source_path,
                    line=raw.header_line + offset,
                )
            key, value = line.split(":", 1)
            last_key = key.strip()
            mapping[last_key] = value.strip()

        return mapping

    def _key_lines(self, raw: RawDocument) -> Dict[str, int]:
        """Map lower-cased top-level keys to their source line."""
        lines = {}
        for offset, line in enumerate(raw.header_text.split("\n")):
            match = TOP_LEVEL_KEY_RE.match(line)
            if match:
                lines.setdefault(match.group("key").strip().lower(), raw.header_line + offset)
        return lines

    # -------------------------------------------------------------------------
    # Field extraction
    # -------------------------------------------------------------------------

    def _build_header(
        self,
        mapping: Dict[str, Any],
        key_lines: Dict[str, int],
        raw: RawDocument,
    ) -> DocumentHeader:
        path = raw.source_path
        values = {key.lower(): value for key, value in mapping.items()}

        def line_of(key: str) -> int:
            return key_lines.get(key, raw.header_line)

        for key in REQUIRED_KEYS:
            if key not in values or not str(values[key]).strip():
                raise ValidationError(key, path=path, line=raw.header_line)

        title = values["title"]
        if not isinstance(title, str):
            raise ValidationError(
                "title", "'title' must be a single string", path=path, line=line_of("title")
            )

        try:
            published_at = parse_timestamp(values["date"])
        except ValueError as e:
            raise ParseError(str(e), path=path, line=line_of("date"))

        categories, tags = (
            self._terms(values, aliases) for aliases in (TERM_KEYS["categories"], TERM_KEYS["tags"])
        )

        flags = set()
        for flag in DocumentFlag:
            if flag.value in values and self._bool(values[flag.value], flag.value, path, line_of):
                flags.add(flag)

        published = True
        if "published" in values:
            published = self._bool(values["published"], "published", path, line_of)

        description = values.get("description")
        if description is not None and not isinstance(description, str):
            description = str(description)

        author = values.get("author", "")
        if isinstance(author, list):
            author = ", ".join(str(name) for name in author)

        extra = {key: value for key, value in mapping.items() if key.lower() not in KNOWN_KEYS}

        try:
            return DocumentHeader(
                title=title,
                author=str(author).strip(),
                published_at=published_at,
                categories=categories,
                tags=tags,
                flags=flags,
                description=description.strip() if description else None,
                published=published,
                extra=extra,
                source_keys=list(mapping.keys()),
            )
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error.get("loc") else "header"
            raise ValidationError(
                field,
                f"invalid '{field}': {error['msg']}",
                path=path,
                line=line_of(field),
            )

    @staticmethod
    def _terms(values: Dict[str, Any], aliases: Tuple[str, ...]) -> List[str]:
        terms: List[str] = []
        for alias in aliases:
            if alias in values:
                terms.extend(parse_terms(values[alias]))
        return terms

    @staticmethod
    def _bool(value: Any, key: str, path, line_of) -> bool:
        try:
            return parse_bool(value)
        except ValueError as e:
            raise ParseError(f"invalid '{key}': {e}", path=path, line=line_of(key))


def serialize_header(header: DocumentHeader) -> str:
    """
    Render a header back into fenced YAML front matter.

    The output holds exactly the keys of the original block, in their
    original order and spelling.
    """
    data: Dict[str, Any] = {}
    flag_values = {flag.value: flag for flag in DocumentFlag}

    for key in header.source_keys:
        name = key.lower()
        if name == "title":
            data[key] = header.title
        elif name == "date":
            data[key] = format_timestamp(header.published_at)
        elif name == "author":
            data[key] = header.author
        elif name in TERM_KEYS["categories"]:
            data[key] = list(header.categories)
        elif name in TERM_KEYS["tags"]:
            data[key] = list(header.tags)
        elif name == "description":
            data[key] = header.description or ""
        elif name == "published":
            data[key] = header.published
        elif name in flag_values:
            data[key] = flag_values[name] in header.flags
        else:
            data[key] = header.extra.get(key)

    body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=None)
    return f"---\n{body}---\n"


def create_metadata_parser() -> MetadataParser:
    """Create a metadata parser."""
    return MetadataParser()

"""
Post discovery and header/body splitting.

This module finds post files in a directory, checks the
``<date>-<slug>.<ext>`` naming convention and splits each file into its raw
metadata block and Markdown body.
"""

import re
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple, Union

from blogsmith.config import Settings, get_settings
from blogsmith.models import HeaderStyle, RawDocument
from blogsmith.utils.errors import ConfigurationError, MalformedDocument
from blogsmith.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)

FILENAME_RE = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2})-(?P<slug>[^.\s][^\s]*)$")
FENCE_OPEN = "---"
FENCE_CLOSE = {"---", "..."}
PLAIN_KEY_RE = re.compile(r"^[A-Za-z][\w-]*\s*:")


class DocumentLoader:
    """Discover post files and split them into header and body."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize the loader.

        Args:
            settings: Settings providing ``post_extensions`` (defaults to global)
        """
        self.settings = settings or get_settings()
        self.extensions = set(self.settings.post_extensions)

    def discover(self, directory: Union[str, Path]) -> List[Path]:
        """
        List post files in a directory, sorted by filename.

        Hidden files and files starting with an underscore are skipped, as
        are files whose extension is not a configured post extension.

        Raises:
            ConfigurationError: If the directory does not exist
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ConfigurationError(
                f"Posts directory not found: {directory}", {"directory": str(directory)}
            )

        files = [
            path
            for path in directory.iterdir()
            if path.is_file()
            and not path.name.startswith((".", "_"))
            and path.suffix.lower() in self.extensions
        ]
        return sorted(files, key=lambda p: p.name)

    @log_performance
    def load_directory(self, directory: Union[str, Path]) -> List[RawDocument]:
        """Load every post in a directory, stopping at the first bad file."""
        paths = self.discover(directory)
        logger.info(f"Found {len(paths)} posts in {directory}")
        return [self.load_file(path) for path in paths]

    def load_file(self, path: Union[str, Path]) -> RawDocument:
        """
        Read one post file and split it.

        Args:
            path: Path to the post

        Returns:
            RawDocument with the header block and body

        Raises:
            MalformedDocument: Bad filename, missing or unterminated metadata block
        """
        path = Path(path)
        with LogContext(document=str(path)):
            filename_date, slug = self.parse_filename(path)
            text = self.read_text(path)
            header_text, header_line, style, body, body_line = self.split(text, path)

            logger.debug(
                f"Loaded {path.name}",
                extra={"header_style": style.value, "body_line": body_line},
            )

            return RawDocument(
                source_path=path,
                slug=slug,
                filename_date=filename_date,
                header_text=header_text,
                header_line=header_line,
                header_style=style,
                body=body,
                body_line=body_line,
            )

    def parse_filename(self, path: Path) -> Tuple[date, str]:
        """Return the (date, slug) encoded in ``YYYY-MM-DD-slug.ext``."""
        match = FILENAME_RE.match(path.stem)
        if not match:
            raise MalformedDocument(
                "filename must follow the '<YYYY-MM-DD>-<slug>.<ext>' convention",
                path=path,
            )
        try:
            filename_date = date.fromisoformat(match.group("date"))
        except ValueError:
            raise MalformedDocument(
                f"invalid date '{match.group('date')}' in filename", path=path
            )
        return filename_date, match.group("slug").lower()

    @staticmethod
    def read_text(path: Path) -> str:
        """Read a file as UTF-8 with the BOM removed and newlines normalized."""
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDocument(f"file is not valid UTF-8: {e.reason}", path=path)
        text = text.lstrip("\ufeff")
        return text.replace("\r\n", "\n").replace("\r", "\n")

    @staticmethod
    def split(text: str, path: Optional[Path] = None) -> Tuple[str, int, HeaderStyle, str, int]:
        """
        Split file text into its metadata block and body.

        Returns:
            Tuple of (header_text, header_line, header_style, body, body_line)
            where line numbers are 1-based.

        Raises:
            MalformedDocument: If there is no metadata block or it never ends
        """
        lines = text.split("\n")

        if lines and lines[0].rstrip() == FENCE_OPEN:
            for index in range(1, len(lines)):
                if lines[index].rstrip() in FENCE_CLOSE:
                    header = "\n".join(lines[1:index])
                    body = "\n".join(lines[index + 1 :])
                    return header, 2, HeaderStyle.FENCED, body, index + 2
            raise MalformedDocument(
                "unterminated metadata block (no closing '---')", path=path, line=1
            )

        if lines and PLAIN_KEY_RE.match(lines[0]):
            end = len(lines)
            for index, line in enumerate(lines):
                if not line.strip():
                    end = index
                    break
            header = "\n".join(lines[:end])
            body = "\n".join(lines[end + 1 :])
            return header, 1, HeaderStyle.PLAIN, body, end + 2

        raise MalformedDocument("missing metadata block", path=path, line=1)


def create_document_loader(settings: Optional[Settings] = None) -> DocumentLoader:
    """Create a document loader with default settings."""
    return DocumentLoader(settings=settings)

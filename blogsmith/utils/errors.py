"""
Custom exceptions for the blogsmith site generator.

This module defines all custom exceptions raised while loading, parsing,
rendering and writing a site. Every document-level error carries the
offending file and line so the CLI can print a precise diagnostic.
"""

from pathlib import Path
from typing import Any, Optional, Union


class BlogsmithException(Exception):
    """Base exception for all blogsmith-specific errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Document Exceptions
# =============================================================================


class DocumentError(BlogsmithException):
    """Base exception for errors tied to a single source document."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        line: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize with the source location."""
        super().__init__(message, details)
        self.path = Path(path) if path is not None else None
        self.line = line

    @property
    def location(self) -> str:
        """Return ``path:line`` (or whatever part of it is known)."""
        if self.path is None:
            return ""
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def __str__(self) -> str:
        """Return ``path:line: message``."""
        location = self.location
        return f"{location}: {self.message}" if location else self.message


class MalformedDocument(DocumentError):
    """File is missing its metadata block, or the block is unterminated."""

    pass


class ValidationError(DocumentError):
    """A required metadata field is missing or invalid."""

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        path: Optional[Union[str, Path]] = None,
        line: Optional[int] = None,
    ) -> None:
        """Initialize with the name of the offending field."""
        message = message or f"missing required field '{field}'"
        super().__init__(message, path=path, line=line, details={"field": field})
        self.field = field


class ParseError(DocumentError):
    """Unparsable date, invalid header syntax or malformed body markup."""

    pass


# =============================================================================
# Build Exceptions
# =============================================================================


class BuildError(BlogsmithException):
    """Error while writing the generated site."""

    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(BlogsmithException):
    """Configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration file or directory is missing."""

    def __init__(self, config_name: str) -> None:
        """Initialize with config name."""
        message = f"Required configuration '{config_name}' is missing"
        super().__init__(message, {"config_name": config_name})

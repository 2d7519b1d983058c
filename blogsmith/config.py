"""
Configuration for the blogsmith site generator.

Settings come from (lowest to highest priority) field defaults, a ``.env``
file, ``BLOGSMITH_*`` environment variables and an optional YAML site
config file passed to :func:`load_settings`.
"""

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blogsmith.utils.errors import ConfigurationError

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BLOGSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_file_path: Optional[Path] = None
    dev_mode: bool = False

    # Site
    site_title: str = "Blog"
    site_description: str = ""
    site_author: str = ""
    site_url: str = "http://localhost:4000"
    base_path: str = ""

    # Input / output
    posts_dir: Path = Path("_posts")
    output_dir: Path = Path("_site")
    assets_dir: Optional[Path] = None
    post_extensions: List[str] = Field(default_factory=lambda: [".md", ".markdown"])
    include_drafts: bool = False
    clean_output: bool = True

    # Rendering
    feed_limit: int = Field(20, ge=1)
    excerpt_length: int = Field(200, ge=20)
    words_per_minute: int = Field(200, ge=1)
    toc_min_level: int = Field(2, ge=1, le=6)
    toc_max_level: int = Field(3, ge=1, le=6)
    math_script_url: str = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"
    mermaid_script_url: str = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}")
        return v

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        """Store the base path as ``/prefix`` without a trailing slash."""
        v = v.strip().strip("/")
        return f"/{v}" if v else ""

    @field_validator("post_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        extensions = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.append(ext if ext.startswith(".") else f".{ext}")
        if not extensions:
            raise ValueError("post_extensions must not be empty")
        return extensions

    @model_validator(mode="after")
    def validate_toc_levels(self) -> "Settings":
        if self.toc_min_level > self.toc_max_level:
            raise ValueError("toc_min_level must not exceed toc_max_level")
        return self

    def get_log_file_path(self) -> Optional[Path]:
        """Return the log file path, creating its directory if needed."""
        if self.log_file_path is None:
            return None
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        return self.log_file_path

    def url_for(self, path: str) -> str:
        """Site-relative URL for an output path such as ``posts/x/``."""
        return f"{self.base_path}/{path.lstrip('/')}"

    def absolute_url(self, path: str) -> str:
        """Absolute URL used in the feed."""
        return self.site_url.rstrip("/") + self.url_for(path)


def load_settings(config_file: Optional[Union[str, Path]] = None, **overrides) -> Settings:
    """
    Build settings from the environment plus an optional YAML config file.

    Args:
        config_file: YAML mapping of setting names to values
        **overrides: Values that win over both the file and the environment

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    values = {}
    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.is_file():
            raise ConfigurationError(
                f"Config file not found: {config_file}", {"config_file": str(config_file)}
            )
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_file} must contain a mapping")
        values.update(data)

    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return Settings(**values)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


# Singleton instance
_settings = None


def get_settings() -> Settings:
    """
    Return the process-wide settings, reading the environment on first use.

    Raises:
        ConfigurationError: If an environment value is invalid
    """
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace (or with ``None``, reset) the process-wide settings."""
    global _settings
    _settings = settings

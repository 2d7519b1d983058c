"""
Shared fixtures for blogsmith tests.
"""

from pathlib import Path
from typing import Optional

import pytest

from blogsmith.config import Settings, set_settings


def make_post(
    directory: Path,
    filename: str,
    title: Optional[str] = "A Post",
    date: Optional[str] = "2022-08-28 20:30:00 +0010",
    body: str = "Hello world.",
    **fields: str,
) -> Path:
    """Write a post with a fenced metadata block and return its path."""
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if date is not None:
        lines.append(f"date: {date}")
    for key, value in fields.items():
        lines.append(f"{key}: {value}")
    lines.append("---")

    path = directory / filename
    path.write_text("\n".join(lines) + "\n" + body + "\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_settings(tmp_path, monkeypatch):
    """Isolate every test from the process-wide settings and any .env file."""
    monkeypatch.chdir(tmp_path)
    set_settings(None)
    yield
    set_settings(None)


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary working directory."""
    return tmp_path


@pytest.fixture
def settings():
    """Settings for a small test site."""
    return Settings(
        site_title="Test Blog",
        site_author="Jane Doe",
        site_url="https://example.com",
    )


@pytest.fixture
def posts_dir(temp_dir):
    """Empty posts directory."""
    directory = temp_dir / "_posts"
    directory.mkdir()
    return directory


@pytest.fixture
def write_post(posts_dir):
    """Factory writing posts into ``posts_dir``."""

    def _write(filename: str, **kwargs) -> Path:
        return make_post(posts_dir, filename, **kwargs)

    return _write

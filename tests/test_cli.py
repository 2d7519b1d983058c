"""
Tests for the command-line interface.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from blogsmith.cli import app
from blogsmith.content.loader import DocumentLoader
from blogsmith.content.metadata import MetadataParser

runner = CliRunner()


def output_of(result) -> str:
    """Command output with Rich's wrapping collapsed."""
    return " ".join(result.output.split())


@pytest.fixture
def site_posts(write_post):
    write_post("2022-03-26-first.md", title="First Post", date="2022-03-26 09:00:00 +0000")
    write_post("2022-08-28-third.md", title="Third Post")
    write_post("2022-04-23-second.md", title="Second Post", date="2022-04-23 12:00:00 +0200")


class TestBuildCommand:
    """Test the build command."""

    def test_build_success(self, site_posts, posts_dir, temp_dir):
        """Test that a clean build exits 0 and writes the site."""
        output_dir = temp_dir / "out"

        result = runner.invoke(app, ["build", str(posts_dir), str(output_dir)])

        assert result.exit_code == 0, result.output
        assert "Built 3 posts" in output_of(result)
        assert (output_dir / "index.html").is_file()

    def test_build_missing_title(self, site_posts, posts_dir, write_post, temp_dir):
        """Test that a post without title fails with a located diagnostic."""
        write_post("2022-09-01-untitled.md", title=None)
        output_dir = temp_dir / "out"

        result = runner.invoke(app, ["build", str(posts_dir), str(output_dir)])

        assert result.exit_code == 1
        output = output_of(result)
        assert "2022-09-01-untitled.md:2" in output
        assert "title" in output
        assert not output_dir.exists()

    def test_build_with_config(self, site_posts, posts_dir, temp_dir):
        """Test that the YAML config file feeds the templates."""
        config = temp_dir / "site.yml"
        config.write_text("site_title: My Notes\nbase_path: /notes\n", encoding="utf-8")

        result = runner.invoke(
            app, ["build", str(posts_dir), str(temp_dir / "out"), "--config", str(config)]
        )

        assert result.exit_code == 0, result.output
        index = (temp_dir / "out" / "index.html").read_text(encoding="utf-8")
        assert "My Notes" in index
        assert 'href="/notes/posts/third/"' in index

    def test_config_keeps_output(self, site_posts, posts_dir, temp_dir):
        """Test that clean_output: false in the config file is not overridden."""
        output_dir = temp_dir / "out"
        output_dir.mkdir()
        (output_dir / "CNAME").write_text("example.com\n", encoding="utf-8")
        config = temp_dir / "site.yml"
        config.write_text("clean_output: false\n", encoding="utf-8")

        result = runner.invoke(app, ["build", str(posts_dir), str(output_dir), "-c", str(config)])

        assert result.exit_code == 0, result.output
        assert (output_dir / "CNAME").read_text(encoding="utf-8") == "example.com\n"
        assert (output_dir / "index.html").is_file()

    def test_clean_flag_beats_config(self, site_posts, posts_dir, temp_dir):
        """Test that an explicit --clean still empties the output directory."""
        output_dir = temp_dir / "out"
        output_dir.mkdir()
        (output_dir / "CNAME").write_text("example.com\n", encoding="utf-8")
        config = temp_dir / "site.yml"
        config.write_text("clean_output: false\n", encoding="utf-8")

        result = runner.invoke(
            app, ["build", str(posts_dir), str(output_dir), "-c", str(config), "--clean"]
        )

        assert result.exit_code == 0, result.output
        assert not (output_dir / "CNAME").exists()

    def test_config_log_file(self, site_posts, posts_dir, temp_dir):
        """Test that log_file_path from the config file receives JSON records."""
        log_file = temp_dir / "logs" / "build.log"
        config = temp_dir / "site.yml"
        config.write_text(f"log_file_path: {log_file.as_posix()}\n", encoding="utf-8")

        result = runner.invoke(app, ["build", str(posts_dir), str(temp_dir / "out"), "-c", str(config)])

        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

        assert result.exit_code == 0, result.output
        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert any("Found 3 posts" in line["message"] for line in lines)

    def test_invalid_env_log_level(self, site_posts, posts_dir, temp_dir):
        """Test that a bad BLOGSMITH_LOG_LEVEL is reported without a traceback."""
        result = runner.invoke(
            app,
            ["build", str(posts_dir), str(temp_dir / "out")],
            env={"BLOGSMITH_LOG_LEVEL": "LOUD"},
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in output_of(result)
        assert "Traceback" not in result.output

    def test_build_missing_config(self, site_posts, posts_dir, temp_dir):
        result = runner.invoke(
            app, ["build", str(posts_dir), str(temp_dir / "out"), "-c", str(temp_dir / "nope.yml")]
        )

        assert result.exit_code == 1
        assert "Config file not found" in output_of(result)

    def test_build_missing_input(self, temp_dir):
        result = runner.invoke(app, ["build", str(temp_dir / "missing"), str(temp_dir / "out")])

        assert result.exit_code == 1
        assert "Posts directory not found" in output_of(result)

    def test_debug_flag(self, site_posts, posts_dir, temp_dir):
        result = runner.invoke(app, ["--debug", "build", str(posts_dir), str(temp_dir / "out")])

        assert result.exit_code == 0, result.output


class TestCheckAndList:
    """Test the check and list commands."""

    def test_check(self, site_posts, posts_dir, temp_dir):
        """Test that check validates without writing."""
        result = runner.invoke(app, ["check", str(posts_dir)])

        assert result.exit_code == 0, result.output
        assert "3 posts OK" in output_of(result)
        assert not (temp_dir / "_site").exists()

    def test_check_parse_error(self, posts_dir, write_post):
        """Test that a bad date is reported with its line."""
        write_post("2022-08-28-bad.md", date="2022-08-28 20:30:00")

        result = runner.invoke(app, ["check", str(posts_dir)])

        assert result.exit_code == 1
        assert "2022-08-28-bad.md:3" in output_of(result)

    def test_check_drafts(self, site_posts, posts_dir, write_post):
        """Test that drafts are only counted with --drafts."""
        write_post("2022-09-01-draft.md", title="Draft", date="2022-09-01 10:00:00 +0000", published="no")

        assert "3 posts OK" in output_of(runner.invoke(app, ["check", str(posts_dir)]))
        assert "4 posts OK" in output_of(runner.invoke(app, ["check", str(posts_dir), "--drafts"]))

    def test_list(self, site_posts, posts_dir):
        """Test that posts are listed newest first."""
        result = runner.invoke(app, ["list", str(posts_dir)])

        assert result.exit_code == 0, result.output
        output = result.output
        assert output.index("Third Post") < output.index("Second Post") < output.index("First Post")

    def test_list_empty(self, posts_dir):
        result = runner.invoke(app, ["list", str(posts_dir)])

        assert result.exit_code == 0
        assert "No posts found" in result.output


class TestNewCommand:
    """Test the new command."""

    def test_new_post_is_valid(self, posts_dir):
        """Test that a scaffolded post loads and parses."""
        result = runner.invoke(
            app,
            [
                "new",
                "Hello: World",
                "--dir",
                str(posts_dir),
                "--date",
                "2022-08-28 20:30:00 +0010",
                "--category",
                "Blogging",
                "--tag",
                "react",
                "--tag",
                "performance",
            ],
        )

        assert result.exit_code == 0, result.output
        path = posts_dir / "2022-08-28-hello-world.md"
        assert path.is_file()

        document = MetadataParser().build_document(DocumentLoader().load_file(path))
        assert document.title == "Hello: World"
        assert document.categories == ["Blogging"]
        assert document.tags == ["react", "performance"]
        assert document.flags == set()
        assert document.published_at.isoformat() == "2022-08-28T20:30:00+00:10"

    def test_new_refuses_overwrite(self, posts_dir):
        args = ["new", "Twice", "--dir", str(posts_dir), "--date", "2022-08-28 10:00:00 +0000"]

        assert runner.invoke(app, args).exit_code == 0
        result = runner.invoke(app, args)

        assert result.exit_code == 1
        assert "already exists" in output_of(result)

    def test_new_bad_date(self, posts_dir):
        result = runner.invoke(app, ["new", "Post", "--dir", str(posts_dir), "--date", "tomorrow"])

        assert result.exit_code == 1
        assert not any(posts_dir.iterdir())

    def test_new_creates_directory(self, temp_dir):
        """Test that the posts directory is created on demand."""
        target = temp_dir / "fresh"

        result = runner.invoke(app, ["new", "First", "--dir", str(target)])

        assert result.exit_code == 0, result.output
        assert len(list(target.glob("*-first.md"))) == 1

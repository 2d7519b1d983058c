"""
Command-line interface for the blogsmith site generator.

This module provides the main CLI entry point: building a site, checking
posts without writing, listing posts and scaffolding a new post.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from blogsmith.config import Settings, load_settings, set_settings
from blogsmith.content.metadata import format_timestamp, parse_timestamp
from blogsmith.content.preprocessor import TextPreprocessor
from blogsmith.site.builder import SiteBuilder
from blogsmith.utils.errors import BlogsmithException, DocumentError
from blogsmith.utils.logging import setup_logging

# Initialize Typer app and Rich console
app = typer.Typer(
    name="blogsmith",
    help="Static site generator for Markdown blogs",
    add_completion=False,
)
console = Console()


def _settings(ctx: typer.Context, config: Optional[Path], **overrides) -> Settings:
    """Load settings for a command and reconfigure logging from them."""
    settings = load_settings(config, **overrides)
    set_settings(settings)
    debug = bool(ctx.obj and ctx.obj.get("debug"))
    setup_logging(log_level="DEBUG" if debug else None)
    return settings


def _fail(error: BlogsmithException) -> None:
    if isinstance(error, DocumentError):
        console.print(
            f"[red]✗[/red] {escape(str(error))}",
            highlight=False,
            soft_wrap=True,
        )
    else:
        console.print(f"[red]Error:[/red] {escape(str(error))}", highlight=False, soft_wrap=True)
    raise typer.Exit(1)


@app.command()
def build(
    ctx: typer.Context,
    input_dir: Path = typer.Argument(..., help="Directory of <date>-<slug>.md posts"),
    output_dir: Path = typer.Argument(..., help="Directory to write the site into"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML site configuration file",
    ),
    drafts: bool = typer.Option(False, "--drafts", help="Include unpublished posts"),
    clean: Optional[bool] = typer.Option(
        None,
        "--clean/--no-clean",
        help="Empty the output directory first (default: clean_output setting)",
    ),
):
    """Build the static site."""
    try:
        settings = _settings(
            ctx,
            config,
            include_drafts=True if drafts else None,
            clean_output=clean,
        )
        builder = SiteBuilder(settings)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Building {input_dir} -> {output_dir}...", total=None)
            result = builder.build(input_dir, output_dir)

        console.print(
            f"[green]✓[/green] Built {result.document_count} posts\n"
            f"  Pages written: {len(result.pages_written)}\n"
            f"  Output: {result.output_dir}",
            highlight=False,
        )
    except BlogsmithException as e:
        _fail(e)


@app.command()
def check(
    ctx: typer.Context,
    input_dir: Path = typer.Argument(..., help="Directory of posts to validate"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML site configuration file"),
    drafts: bool = typer.Option(False, "--drafts", help="Include unpublished posts"),
):
    """Validate posts without writing anything."""
    try:
        settings = _settings(ctx, config, include_drafts=True if drafts else None)
        collection = SiteBuilder(settings).check(input_dir)
        console.print(f"[green]✓[/green] {len(collection)} posts OK", highlight=False)
    except BlogsmithException as e:
        _fail(e)


@app.command("list")
def list_posts(
    ctx: typer.Context,
    input_dir: Path = typer.Argument(..., help="Directory of posts"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML site configuration file"),
    drafts: bool = typer.Option(False, "--drafts", "-a", help="Include unpublished posts"),
):
    """List posts in index order."""
    try:
        settings = _settings(ctx, config, include_drafts=True if drafts else None)
        collection = SiteBuilder(settings).check(input_dir)
    except BlogsmithException as e:
        _fail(e)
        return

    if not len(collection):
        console.print("No posts found")
        return

    table = Table(title=f"Posts ({len(collection)})")
    table.add_column("Date", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Categories")
    table.add_column("Tags")
    table.add_column("Min", justify="right")

    for post in collection:
        document = post.document
        title = document.title if document.published else f"{document.title} (draft)"
        table.add_row(
            document.published_at.strftime("%Y-%m-%d"),
            title,
            ", ".join(document.categories),
            ", ".join(document.tags),
            str(post.reading_minutes),
        )

    console.print(table)


@app.command()
def new(
    title: str = typer.Argument(..., help="Post title"),
    directory: Path = typer.Option(Path("_posts"), "--dir", "-d", help="Posts directory"),
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Publish timestamp, e.g. '2022-08-28 20:30:00 +0010' (default: now)",
    ),
    categories: List[str] = typer.Option([], "--category", help="Category (repeatable)"),
    tags: List[str] = typer.Option([], "--tag", help="Tag (repeatable)"),
):
    """Create a new post with a metadata block."""
    try:
        published_at = parse_timestamp(date) if date else datetime.now().astimezone()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(1)

    slug = TextPreprocessor.slugify(title, default="post")
    path = directory / f"{published_at:%Y-%m-%d}-{slug}.md"
    if path.exists():
        console.print(f"[red]Error:[/red] {path} already exists", highlight=False)
        raise typer.Exit(1)

    header = {
        "title": title,
        "date": format_timestamp(published_at),
        "categories": list(categories),
        "tags": list(tags),
    }
    content = "---\n" + yaml.safe_dump(
        header, sort_keys=False, allow_unicode=True, default_flow_style=None
    ) + "---\n\n"

    directory.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {path}", highlight=False)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """blogsmith - build a static blog from Markdown posts."""
    ctx.obj = {"debug": debug}
    try:
        setup_logging(log_level="DEBUG" if debug else None)
    except BlogsmithException as e:
        _fail(e)


if __name__ == "__main__":
    app()

"""
Static site build pipeline.

This module drives the whole build: load and parse every post, render each
body, lay the collection out into pages and write them. Every document is
parsed and every page rendered before the first file is written, so a
broken post never leaves a half-published site behind.
"""

import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from blogsmith.config import Settings, get_settings
from blogsmith.content.loader import DocumentLoader
from blogsmith.content.metadata import MetadataParser
from blogsmith.content.preprocessor import create_text_preprocessor
from blogsmith.models import BuildResult, Document, DocumentFlag, RenderedDocument
from blogsmith.rendering.html import HtmlWriter
from blogsmith.rendering.renderer import MarkdownRenderer, table_of_contents
from blogsmith.site.collection import DocumentCollection, TermGroup
from blogsmith.site.templates import create_environment
from blogsmith.utils.errors import BuildError, ConfigurationError, ValidationError
from blogsmith.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)


class SiteBuilder:
    """Build a static site from a directory of posts."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize the builder and its pipeline stages.

        Args:
            settings: Build settings (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.loader = DocumentLoader(self.settings)
        self.parser = MetadataParser()
        self.renderer = MarkdownRenderer()
        self.preprocessor = create_text_preprocessor(self.settings)
        self.env = create_environment(self.settings)

    # -------------------------------------------------------------------------
    # Pipeline stages
    # -------------------------------------------------------------------------

    def load_documents(self, input_dir: Union[str, Path]) -> List[Document]:
        """
        Load and parse every post, dropping drafts unless configured.

        Raises:
            MalformedDocument, ValidationError, ParseError: On the first bad post
        """
        raws = self.loader.load_directory(input_dir)
        documents = [self.parser.build_document(raw) for raw in raws]

        if not self.settings.include_drafts:
            drafts = [doc for doc in documents if not doc.published]
            for draft in drafts:
                logger.info(f"Skipping draft: {draft.source_path.name}")
            documents = [doc for doc in documents if doc.published]

        self._check_unique_slugs(documents)
        return documents

    def render_document(self, document: Document) -> RenderedDocument:
        """Render one document's body and derive its summary fields."""
        with LogContext(document=str(document.source_path)):
            blocks = self.renderer.render(
                document.body,
                flags=document.flags,
                first_line=document.body_line,
                path=document.source_path,
            )
            html = HtmlWriter(document.flags).write(blocks)
            word_count = self.preprocessor.word_count(blocks)

            logger.debug(
                f"Rendered {document.slug}",
                extra={"blocks": len(blocks), "word_count": word_count},
            )

            return RenderedDocument(
                document=document,
                blocks=blocks,
                html=str(html),
                toc=table_of_contents(
                    blocks, self.settings.toc_min_level, self.settings.toc_max_level
                ),
                excerpt=self.preprocessor.excerpt(blocks, document.description),
                word_count=word_count,
                reading_minutes=self.preprocessor.reading_minutes(word_count),
                url=self.post_url(document),
            )

    def check(self, input_dir: Union[str, Path]) -> DocumentCollection:
        """Run load, parse and render without writing anything."""
        documents = self.load_documents(input_dir)
        return DocumentCollection(self.render_document(doc) for doc in documents)

    @log_performance
    def build(
        self,
        input_dir: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> BuildResult:
        """
        Build the site.

        Args:
            input_dir: Posts directory (defaults to ``settings.posts_dir``)
            output_dir: Output directory (defaults to ``settings.output_dir``)

        Returns:
            BuildResult describing what was written

        Raises:
            MalformedDocument, ValidationError, ParseError: For a broken post
            ConfigurationError: For unusable input/output paths
            BuildError: If writing the output fails
        """
        start_time = time.perf_counter()
        input_dir = Path(input_dir or self.settings.posts_dir)
        output_dir = Path(output_dir or self.settings.output_dir)
        self._check_paths(input_dir, output_dir)

        collection = self.check(input_dir)
        pages = self.render_pages(collection)

        self._prepare_output(output_dir)
        written = self._write_pages(output_dir, pages)
        self._copy_assets(output_dir)

        duration = time.perf_counter() - start_time
        logger.info(
            f"Built {len(collection)} posts into {output_dir} ({len(written)} pages, {duration:.2f}s)"
        )

        return BuildResult(
            output_dir=output_dir,
            documents=collection.items,
            pages_written=written,
            duration_seconds=duration,
        )

    # -------------------------------------------------------------------------
    # Pages
    # -------------------------------------------------------------------------

    def post_url(self, document: Document) -> str:
        return self.settings.url_for(f"posts/{document.slug}/")

    def render_pages(self, collection: DocumentCollection) -> Dict[str, str]:
        """Render every output page, keyed by path relative to the output dir."""
        posts = collection.items
        pages: Dict[str, str] = {}

        pinned = [post for post in posts if post.document.has_flag(DocumentFlag.PIN)]
        pages["index.html"] = self._render(
            "listing.html", heading="Posts", posts=posts, pinned=pinned
        )

        post_template = self.env.get_template("post.html")
        for post in posts:
            document = post.document
            pages[f"posts/{document.slug}/index.html"] = post_template.render(
                post=post,
                flags=sorted(flag.value for flag in document.flags),
                show_toc=document.has_flag(DocumentFlag.TOC),
                author=document.author or self.settings.site_author,
            )

        for prefix, label, heading, groups in (
            ("categories", "Category", "Categories", collection.by_category()),
            ("tags", "Tag", "Tags", collection.by_tag()),
        ):
            pages[f"{prefix}/index.html"] = self._render(
                "terms.html", heading=heading, groups=groups, prefix=prefix
            )
            for group in groups:
                pages[f"{prefix}/{group.slug}/index.html"] = self._term_page(label, group)

        pages["archives/index.html"] = self._render("archives.html", years=collection.by_year())

        latest = collection.latest(self.settings.feed_limit)
        updated = latest[0].document.published_at if latest else datetime.now(timezone.utc)
        pages["feed.xml"] = self._render("feed.xml", posts=latest, updated=updated.isoformat())

        return pages

    def _term_page(self, label: str, group: TermGroup) -> str:
        return self._render(
            "listing.html", heading=f"{label}: {group.name}", posts=group.documents, pinned=[]
        )

    def _render(self, template: str, **context) -> str:
        return self.env.get_template(template).render(**context)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def _check_paths(self, input_dir: Path, output_dir: Path) -> None:
        source = input_dir.resolve()
        target = output_dir.resolve()
        if source == target or target in source.parents:
            raise ConfigurationError(
                f"Output directory {output_dir} must not contain the posts directory {input_dir}",
                {"input_dir": str(input_dir), "output_dir": str(output_dir)},
            )

    def _prepare_output(self, output_dir: Path) -> None:
        try:
            if output_dir.exists() and self.settings.clean_output:
                logger.debug(f"Cleaning {output_dir}")
                for child in output_dir.iterdir():
                    if child.is_dir() and not child.is_symlink():
                        shutil.rmtree(child)
                    else:
                        child.unlink()
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildError(f"Failed to prepare output directory {output_dir}: {e}")

    def _write_pages(self, output_dir: Path, pages: Dict[str, str]) -> List[Path]:
        written = []
        for relative, content in pages.items():
            path = output_dir / relative
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            except OSError as e:
                raise BuildError(f"Failed to write {path}: {e}", {"path": str(path)})
            written.append(path)
        return written

    def _copy_assets(self, output_dir: Path) -> None:
        assets_dir = self.settings.assets_dir
        if assets_dir is None:
            return
        if not assets_dir.is_dir():
            raise ConfigurationError(f"Assets directory not found: {assets_dir}")
        try:
            shutil.copytree(assets_dir, output_dir / "assets", dirs_exist_ok=True)
        except OSError as e:
            raise BuildError(f"Failed to copy assets from {assets_dir}: {e}")

    @staticmethod
    def _check_unique_slugs(documents: List[Document]) -> None:
        seen: Dict[str, Document] = {}
        for document in documents:
            other = seen.get(document.slug)
            if other is not None:
                raise ValidationError(
                    "slug",
                    f"duplicate slug '{document.slug}' (also used by {other.source_path.name})",
                    path=document.source_path,
                )
            seen[document.slug] = document


def create_site_builder(settings: Optional[Settings] = None) -> SiteBuilder:
    """Create a site builder with default pipeline stages."""
    return SiteBuilder(settings=settings)

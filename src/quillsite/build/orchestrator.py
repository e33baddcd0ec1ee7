"""Build orchestration: content + templates → deployable static output.

Steps run in a fixed order and the first failure aborts the build:

    copy-assets → aggregate → copy-media → generate-admin
        → discover-templates → render

Re-running a build with unchanged inputs produces byte-identical output.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

from quillsite.admin.forms import (
    ADMIN_DIR,
    edit_page_name,
    list_content,
    relative_content_path,
    render_edit_page,
    render_index_page,
)
from quillsite.build.aggregator import BuildContext, aggregate
from quillsite.build.report import BuildReport
from quillsite.config import QuillsiteConfig
from quillsite.content.codec import TreeFormCodec
from quillsite.content.entities import open_entity
from quillsite.core import _atomic_write
from quillsite.errors import BuildStepError, QuillsiteError, RejectedPath
from quillsite.templates.engine import compose, load_layout, render

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = (".html", ".tmpl")
INDEX_NAME = "index"
PROTECTED_NAMES = frozenset({".htaccess"})
STATIC_DIR = Path(__file__).parent.parent / "static"
ADMIN_ASSETS = ("admin.css", "admin.js")
PLACEHOLDER_INDEX = (
    "{% block content %}<h1>Welcome to Your Site</h1>"
    "<p>Your custom site content goes here.</p>{% endblock %}"
)


def output_path_for(relative_template: Path) -> Path:
    """Map a template path (relative to the templates dir) to its output path.

    ``index`` templates keep their location; any other ``name`` is written
    as ``name/index.html`` for directory-style URLs.
    """
    stem = relative_template.stem
    parent = relative_template.parent
    if stem == INDEX_NAME:
        return parent / "index.html"
    return parent / stem / "index.html"


def page_url_for(relative_output: Path) -> str:
    parent = relative_output.parent.as_posix()
    return "/" if parent == "." else f"/{parent}/"


def discover_templates(templates_dir: Path) -> list[Path]:
    """Find page templates, skipping ``_``-prefixed partials and layouts."""
    if not templates_dir.is_dir():
        logger.warning("Templates directory %s does not exist", templates_dir)
        return []
    found: list[Path] = []
    for path in sorted(templates_dir.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in TEMPLATE_SUFFIXES:
            continue
        rel = path.relative_to(templates_dir)
        if any(part.startswith("_") for part in rel.parts):
            continue
        found.append(path)
    return found


class SiteBuilder:
    """Runs builds and cleans for one project configuration."""

    def __init__(self, config: QuillsiteConfig) -> None:
        self.config = config
        self._codec = TreeFormCodec(config.forms.max_depth)
        self._context: BuildContext = {}
        self._templates: list[tuple[Path, str]] = []

    # ── Build ────────────────────────────────────────────────────

    def build(self) -> BuildReport:
        """Run every build step in order.

        Raises:
            BuildStepError: naming the failed step, chained to the cause.
        """
        report = BuildReport()
        self._context = {}
        self._templates = []

        steps: list[tuple[str, Callable[[BuildReport], None]]] = [
            ("copy-assets", self._copy_assets),
            ("aggregate", self._aggregate),
            ("copy-media", self._copy_media),
            ("generate-admin", self._generate_admin),
            ("discover-templates", self._discover_templates),
            ("render", self._render),
        ]
        for name, step in steps:
            logger.info("Build step: %s", name)
            try:
                step(report)
            except (QuillsiteError, OSError) as exc:
                logger.error("Build step %s failed: %s", name, exc)
                raise BuildStepError(name, exc) from exc
            report.steps.append(name)
        report.steps.append("done")
        logger.info("Build finished: %s", report.summary())
        return report

    @property
    def context(self) -> BuildContext:
        """Context produced by the last build's aggregate step."""
        return self._context

    def _copy_assets(self, report: BuildReport) -> None:
        output_dir = self.config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        assets_dir = self.config.assets_dir
        if not assets_dir.is_dir():
            logger.info("No assets directory at %s", assets_dir)
            return
        for src in sorted(assets_dir.rglob("*")):
            if not src.is_file():
                continue
            rel = src.relative_to(assets_dir)
            dest = output_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dest)
            report.assets.append(rel.as_posix())

    def _aggregate(self, report: BuildReport) -> None:
        self._context = aggregate(
            self.config.content_dir, self.config.site, report=report, codec=self._codec
        )

    def _copy_media(self, report: BuildReport) -> None:
        content_dir = self.config.content_dir
        if not content_dir.is_dir():
            return
        media_dir = self.config.output_dir / self.config.media.output_subdir
        for src in sorted(content_dir.iterdir()):
            if not src.is_file() or not self.config.is_media(src):
                continue
            media_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, media_dir / src.name)
            report.media.append(src.name)

    def _generate_admin(self, report: BuildReport) -> None:
        if not self.config.admin.enabled:
            logger.info("Admin generation disabled")
            return
        admin_dir = self.config.output_dir / ADMIN_DIR
        listings = list_content(self.config)

        for listing in listings:
            entity = open_entity(self.config.content_dir / listing.name, self.config)
            try:
                form = entity.admin_form().model_copy(
                    update={"content_path": relative_content_path(entity.path, self.config)}
                )
                html = render_edit_page(form, self.config)
            except QuillsiteError as exc:
                logger.warning("No edit page for %s: %s", listing.name, exc)
                report.skip(entity.path, str(exc))
                continue
            page = admin_dir / edit_page_name(listing.name)
            _atomic_write(page, html)
            report.admin_pages.append(page.relative_to(self.config.output_dir).as_posix())

        index = admin_dir / "index.html"
        _atomic_write(index, render_index_page(listings))
        report.admin_pages.append(index.relative_to(self.config.output_dir).as_posix())

        for asset in ADMIN_ASSETS:
            shutil.copyfile(STATIC_DIR / asset, admin_dir / asset)

    def _discover_templates(self, report: BuildReport) -> None:
        templates_dir = self.config.templates_dir
        if not templates_dir.is_dir():
            logger.warning(
                "Templates directory %s does not exist; writing a placeholder index page",
                templates_dir,
            )
            self._templates = [(Path("index.html"), PLACEHOLDER_INDEX)]
            return
        self._templates = [
            (path.relative_to(templates_dir), path.read_text(encoding="utf-8"))
            for path in discover_templates(templates_dir)
        ]
        logger.info("Found %d page template(s)", len(self._templates))

    def _render(self, report: BuildReport) -> None:
        layout = load_layout(self.config.layout_path)
        search_paths = [self.config.templates_dir] if self.config.templates_dir.is_dir() else []
        for rel, source in self._templates:
            rel_output = output_path_for(rel)
            compiled = compose(
                layout, source, name=f"pages/{rel.as_posix()}", search_paths=search_paths
            )
            context: dict[str, Any] = {
                **self._context,
                "page": {"name": rel.stem, "url": page_url_for(rel_output)},
            }
            html = render(compiled, context)
            _atomic_write(self.config.output_dir / rel_output, html)
            report.pages.append(rel_output.as_posix())

    # ── Clean ────────────────────────────────────────────────────

    def clean(self) -> list[Path]:
        """Remove generated output, keeping content and the admin entry point.

        Entries kept at the output root: the content directory (or the
        directory containing it), the admin entry point, and ``.htaccess``.

        Returns:
            The removed top-level entries.
        """
        output_dir = self.config.output_dir
        if not output_dir.is_dir():
            return []

        resolved_output = output_dir.resolve()
        project_root = self.config.project_root
        if project_root.is_relative_to(resolved_output):
            raise RejectedPath(output_dir, "output directory contains the project root")

        keep = PROTECTED_NAMES | {self.config.admin.entry_point}
        content_dir = self.config.content_dir.resolve()
        removed: list[Path] = []
        for entry in sorted(output_dir.iterdir()):
            if entry.name in keep:
                continue
            if content_dir.is_relative_to(entry.resolve()):
                continue
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            logger.debug("Removed %s", entry)
            removed.append(entry)
        logger.info("Cleaned %d entr(ies) from %s", len(removed), output_dir)
        return removed

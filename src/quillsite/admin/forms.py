"""Admin page rendering: content listings and edit pages as static HTML."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from quillsite.config import QuillsiteConfig
from quillsite.content.entities import content_type_for
from quillsite.content.models import AdminForm
from quillsite.errors import UnsupportedOperation
from quillsite.templates.engine import TEMPLATES_DIR, compose, load_layout, render

logger = logging.getLogger(__name__)

ADMIN_DIR = "admin"
ADMIN_BASE_URL = "/" + ADMIN_DIR
INDEX_TEMPLATE = "admin/index.html"
EDIT_TEMPLATE = "admin/edit.html"


class ContentListing(BaseModel):
    """One editable content file."""

    name: str
    content_type: str
    content_path: str
    admin_url: str


def edit_page_name(file_name: str) -> str:
    """Static edit page file name for a content file, e.g. ``site.json.html``."""
    return f"{file_name}.html"


def relative_content_path(path: Path, config: QuillsiteConfig) -> str:
    """Content path as submitted by forms: relative to the project root."""
    try:
        return path.resolve().relative_to(config.project_root).as_posix()
    except ValueError:
        return str(path)


def list_content(config: QuillsiteConfig) -> list[ContentListing]:
    """List editable files directly under the content directory, sorted."""
    content_dir = config.content_dir
    if not content_dir.is_dir():
        return []
    listings: list[ContentListing] = []
    for entry in sorted(content_dir.iterdir()):
        if not entry.is_file():
            continue
        try:
            content_type = content_type_for(entry, config)
        except UnsupportedOperation:
            logger.debug("Not listing %s: unsupported type", entry.name)
            continue
        listings.append(
            ContentListing(
                name=entry.name,
                content_type=content_type,
                content_path=relative_content_path(entry, config),
                admin_url=f"{ADMIN_BASE_URL}/{edit_page_name(entry.name)}",
            )
        )
    return listings


def _render_admin(template_name: str, context: dict[str, object]) -> str:
    page_source = (TEMPLATES_DIR / template_name).read_text(encoding="utf-8")
    compiled = compose(load_layout(), page_source, name=template_name)
    return render(compiled, {"admin_base": ADMIN_BASE_URL, **context})


def render_index_page(listings: list[ContentListing]) -> str:
    return _render_admin(INDEX_TEMPLATE, {"Title": "Site Administration", "listings": listings})


def render_edit_page(form: AdminForm, config: QuillsiteConfig) -> str:
    """Render a full edit page posting to the configured admin action."""
    return _render_admin(
        EDIT_TEMPLATE,
        {"Title": form.title, "admin_form": form, "action": config.admin.action},
    )

"""Admin operations independent of any HTTP or CGI transport.

The transport layer parses the request into a flat ``{name: value}`` form
map and hands it to :meth:`AdminService.save`; every failure comes back as
a user-visible :class:`AdminResult` rather than an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import BaseModel

from quillsite.admin.forms import (
    ContentListing,
    list_content,
    relative_content_path,
    render_edit_page,
)
from quillsite.config import QuillsiteConfig
from quillsite.content.entities import ContentEntity, entity_for_type, open_entity
from quillsite.content.models import CONTENT_PATH_FIELD, CONTENT_TYPE_FIELD
from quillsite.errors import QuillsiteError, RejectedPath
from quillsite.paths import PathGuard

logger = logging.getLogger(__name__)


class AdminResult(BaseModel):
    """Outcome of an admin request, ready to show to the editor."""

    ok: bool
    message: str
    content_path: str = ""
    saved: bool = False
    rebuilt: bool = False


class AdminService:
    """Lists, renders, and saves content files for one project."""

    def __init__(self, config: QuillsiteConfig) -> None:
        self.config = config
        self._content_guard = PathGuard(config.content_dir)

    def list_content(self) -> list[ContentListing]:
        return list_content(self.config)

    def open(self, content_path: str) -> ContentEntity:
        """Open a content file by path, confined to the content directory."""
        entity = open_entity(content_path, self.config)
        self._confine(entity)
        return entity

    def edit_page(self, content_path: str) -> str:
        """Render the full edit page for one content file.

        Raises:
            QuillsiteError: if the path is rejected or the file cannot be
                decoded.
        """
        entity = self.open(content_path)
        form = entity.admin_form().model_copy(
            update={"content_path": relative_content_path(entity.path, self.config)}
        )
        return render_edit_page(form, self.config)

    def save(self, form: Mapping[str, str]) -> AdminResult:
        """Save a submitted form, then rebuild the site if configured to."""
        content_type = form.get(CONTENT_TYPE_FIELD, "")
        content_path = form.get(CONTENT_PATH_FIELD, "")
        if not content_type or not content_path:
            return AdminResult(ok=False, message="Missing content_type or content_path")

        try:
            entity = entity_for_type(content_type, content_path, self.config)
            self._confine(entity)
            entity.save(form)
        except QuillsiteError as exc:
            logger.warning("Save failed for %s: %s", content_path, exc)
            return AdminResult(
                ok=False, message=f"Error saving content: {exc}", content_path=content_path
            )

        if not self.config.admin.rebuild_on_save:
            return AdminResult(
                ok=True, message="Content saved.", content_path=content_path, saved=True
            )

        from quillsite.build.orchestrator import SiteBuilder

        try:
            SiteBuilder(self.config).build()
        except QuillsiteError as exc:
            logger.error("Rebuild after saving %s failed: %s", content_path, exc)
            return AdminResult(
                ok=False,
                message=f"Content saved, but rebuilding the site failed: {exc}",
                content_path=content_path,
                saved=True,
            )
        return AdminResult(
            ok=True,
            message="Content saved. Site rebuilt successfully.",
            content_path=content_path,
            saved=True,
            rebuilt=True,
        )

    def _confine(self, entity: ContentEntity) -> None:
        if not self._content_guard.is_safe(entity.path):
            raise RejectedPath(entity.path, "outside content directory")

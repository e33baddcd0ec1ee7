"""Content entities: typed wrappers over one Markdown, JSON, or media file.

Each entity loads its backing file on demand and caches the decoded
value. Saving fully overwrites the file; nothing here ever deletes a
content file.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from quillsite.config import QuillsiteConfig
from quillsite.content.codec import TreeFormCodec
from quillsite.content.models import (
    RESERVED_FIELDS,
    AdminForm,
    FieldDescriptor,
    InputKind,
)
from quillsite.core import _atomic_write
from quillsite.errors import DecodeError, SaveError, UnsupportedOperation
from quillsite.paths import PathGuard

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")
JSON_SUFFIXES = (".json",)


class ContentEntity(ABC):
    """Base class for managed content files."""

    name: str = ""

    def __init__(self, path: Path) -> None:
        self.path = path

    @abstractmethod
    def load(self) -> Any:
        """Return the decoded content, reading the file on first use."""

    @abstractmethod
    def save(self, fields: Mapping[str, str]) -> None:
        """Replace the content with submitted form fields and persist it."""

    @abstractmethod
    def admin_form(self) -> AdminForm:
        """Describe the edit form for this content."""

    def _read_text(self) -> str | None:
        """Return the file's text, or None when the file does not exist."""
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"{self.path} is not valid UTF-8: {exc}") from exc

    def _write_text(self, content: str) -> None:
        try:
            _atomic_write(self.path, content)
        except OSError as exc:
            raise SaveError(f"Could not write {self.path}: {exc}") from exc
        logger.info("Saved %s content to %s", self.name, self.path)


class MarkdownEntity(ContentEntity):
    """A Markdown file. The raw text is authoritative; HTML is derived."""

    name = "markdown"

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self._raw_text: str | None = None

    def load(self) -> str:
        if self._raw_text is None:
            text = self._read_text()
            self._raw_text = text if text is not None else ""
        return self._raw_text

    def save(self, fields: Mapping[str, str]) -> None:
        """Write the ``content`` field verbatim.

        Raises SaveError if the submission carries no ``content`` field.
        """
        if "content" not in fields:
            raise SaveError(f"Missing 'content' field for {self.path.name}")
        content = fields["content"]
        self._write_text(content)
        self._raw_text = content

    def admin_form(self) -> AdminForm:
        return AdminForm(
            content_type=self.name,
            content_path=str(self.path),
            title=f"Edit {self.path.name}",
            submit_label="Save Content",
            fields=[
                FieldDescriptor(
                    path="content",
                    label="Markdown Content",
                    kind=InputKind.TEXTAREA,
                    value=self.load(),
                )
            ],
        )


class JSONEntity(ContentEntity):
    """A JSON document edited through auto-generated forms."""

    name = "json"

    def __init__(self, path: Path, codec: TreeFormCodec | None = None) -> None:
        super().__init__(path)
        self._codec = codec or TreeFormCodec()
        self._value: Any = None
        self._loaded = False

    def load(self) -> Any:
        """Parse the file. A missing file yields ``{}``.

        Raises DecodeError on malformed JSON, or JSON nested too deeply for
        the parser; the content is never silently replaced.
        """
        if not self._loaded:
            text = self._read_text()
            if text is None:
                self._value = {}
            else:
                try:
                    self._value = json.loads(text)
                except (ValueError, RecursionError) as exc:
                    raise DecodeError(f"Malformed JSON in {self.path}: {exc}") from exc
            self._loaded = True
        return self._value

    def save(self, fields: Mapping[str, str]) -> None:
        submitted = {k: v for k, v in fields.items() if k not in RESERVED_FIELDS}
        value = self._codec.decode(submitted, self.load())
        self._write_text(json.dumps(value, indent=2, ensure_ascii=False) + "\n")
        self._value = value

    def admin_form(self) -> AdminForm:
        return AdminForm(
            content_type=self.name,
            content_path=str(self.path),
            title=f"Edit {self.path.name}",
            submit_label="Save Data",
            fields=self._codec.encode(self.load()),
        )


class MediaEntity(ContentEntity):
    """A binary asset exposed through a public URL."""

    name = "media"

    def __init__(self, path: Path, content_root: Path, url_prefix: str = "/media") -> None:
        super().__init__(path)
        self._content_root = content_root
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def public_url(self) -> str:
        """URL derived by stripping the content-root prefix from the path."""
        try:
            rel = self.path.relative_to(self._content_root)
        except ValueError:
            rel = Path(self.path.name)
        return f"{self._url_prefix}/{rel.as_posix()}"

    def load(self) -> str:
        return self.public_url

    def save(self, fields: Mapping[str, str]) -> None:
        raise UnsupportedOperation("media upload is not implemented")

    def admin_form(self) -> AdminForm:
        return AdminForm(
            content_type=self.name,
            content_path=str(self.path),
            title=f"Manage {self.path.name}",
            submit_label="Upload File",
            enctype="multipart/form-data",
            preview_url=self.public_url if self.path.exists() else "",
            fields=[FieldDescriptor(path="file", label="Upload New File", kind=InputKind.FILE)],
        )


CONTENT_TYPES: dict[str, type[ContentEntity]] = {
    MarkdownEntity.name: MarkdownEntity,
    JSONEntity.name: JSONEntity,
    MediaEntity.name: MediaEntity,
}


def content_type_for(path: Path, config: QuillsiteConfig) -> str:
    """Map a file name to its content-type tag by extension."""
    suffix = path.suffix.lower()
    if suffix in JSON_SUFFIXES:
        return JSONEntity.name
    if suffix in MARKDOWN_SUFFIXES:
        return MarkdownEntity.name
    if config.is_media(path):
        return MediaEntity.name
    raise UnsupportedOperation(f"Unsupported content file type: {path.name}")


def entity_for_type(content_type: str, path: str | Path, config: QuillsiteConfig) -> ContentEntity:
    """Build the entity for a submitted ``content_type`` tag.

    The path is validated against the project root first.
    """
    if content_type not in CONTENT_TYPES:
        raise UnsupportedOperation(f"Unknown content type: {content_type}")
    resolved = PathGuard(config.project_root).validate(path)
    if content_type == JSONEntity.name:
        return JSONEntity(resolved, TreeFormCodec(config.forms.max_depth))
    if content_type == MediaEntity.name:
        return MediaEntity(resolved, config.content_dir.resolve(), config.media.url_prefix)
    return MarkdownEntity(resolved)


def open_entity(path: str | Path, config: QuillsiteConfig) -> ContentEntity:
    """Open a content file, choosing the entity type from its extension."""
    return entity_for_type(content_type_for(Path(path), config), path, config)

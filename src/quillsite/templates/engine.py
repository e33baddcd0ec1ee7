"""
Jinja2 layout composition for site pages and admin pages.

A single base layout defines the blocks ``head``, ``css``, ``js``,
``header``, ``content`` and ``footer``. Page templates are compiled as
children of that layout: they redefine the blocks they need and inherit
the layout's defaults for the rest. Pages must define ``content``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
)

from quillsite.errors import RenderError

logger = logging.getLogger(__name__)

# Bundled templates (layout.html, admin pages)
TEMPLATES_DIR = Path(__file__).parent

LAYOUT_NAME = "layout.html"
REQUIRED_BLOCK = "content"

_EXTENDS_RE = re.compile(r"^\s*\{%-?\s*extends\b")


@dataclass(frozen=True)
class CompiledTemplate:
    """A page template bound to its layout."""

    name: str
    template: Template

    @property
    def blocks(self) -> frozenset[str]:
        """Blocks the page itself overrides."""
        return frozenset(self.template.blocks)


def load_layout(path: Path | None = None) -> str:
    """Return the layout source from ``path``, or the bundled layout."""
    source = path if path is not None else TEMPLATES_DIR / LAYOUT_NAME
    try:
        return source.read_text(encoding="utf-8")
    except OSError as exc:
        raise RenderError(f"Could not read layout {source}: {exc}") from exc


def create_environment(
    sources: Mapping[str, str] | None = None,
    search_paths: Sequence[Path] = (),
) -> Environment:
    """Build a strict, autoescaping environment.

    In-memory ``sources`` take precedence over project ``search_paths``
    (for partials pulled in by ``include`` or ``import``), which take
    precedence over the bundled templates.
    """
    loaders: list[BaseLoader] = [DictLoader(dict(sources or {}))]
    loaders.extend(FileSystemLoader(str(path)) for path in search_paths)
    loaders.append(FileSystemLoader(str(TEMPLATES_DIR)))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def compose(
    layout_source: str,
    page_source: str,
    name: str = "page.html",
    search_paths: Sequence[Path] = (),
) -> CompiledTemplate:
    """Compile ``page_source`` as a child of ``layout_source``.

    Pages that do not start with their own ``{% extends %}`` are wrapped to
    extend the layout.

    Raises:
        RenderError: On malformed template syntax, or when the page does
            not define the ``content`` block.
    """
    if not _EXTENDS_RE.match(page_source):
        page_source = '{% extends "' + LAYOUT_NAME + '" %}\n' + page_source

    env = create_environment({LAYOUT_NAME: layout_source, name: page_source}, search_paths)
    try:
        template = env.get_template(name)
    except TemplateError as exc:
        raise RenderError(f"Could not compile {name}: {exc}") from exc

    if REQUIRED_BLOCK not in template.blocks:
        raise RenderError(f"{name} does not define the '{REQUIRED_BLOCK}' block")
    return CompiledTemplate(name=name, template=template)


def render(compiled: CompiledTemplate, context: Mapping[str, Any]) -> str:
    """Render a composed template.

    Raises:
        RenderError: On unresolvable variables or any template runtime error.
    """
    try:
        return compiled.template.render(dict(context))
    except TemplateError as exc:
        raise RenderError(f"Could not render {compiled.name}: {exc}") from exc

"""Content aggregation: flat content directory → one template context.

Every ``.json`` file contributes its parsed value under its base name.
Every ``.md``/``.markdown`` file contributes its raw text under its base
name and the rendered HTML under ``<name>HTML``. A file that fails to load
is logged and skipped; the rest of the directory is still aggregated.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from markupsafe import Markup

from quillsite.build.report import BuildReport
from quillsite.config import SiteDefaults
from quillsite.content.codec import TreeFormCodec
from quillsite.content.entities import (
    JSON_SUFFIXES,
    MARKDOWN_SUFFIXES,
    JSONEntity,
    MarkdownEntity,
)
from quillsite.errors import DecodeError
from quillsite.markdown import to_html

logger = logging.getLogger(__name__)

BuildContext = dict[str, Any]

SITE_KEY = "site"
HTML_SUFFIX = "HTML"


def aggregate(
    content_dir: Path,
    defaults: SiteDefaults | None = None,
    *,
    report: BuildReport | None = None,
    codec: TreeFormCodec | None = None,
) -> BuildContext:
    """Load every JSON and Markdown file directly under ``content_dir``.

    Entries are visited in sorted order so that repeated builds produce
    the same context; callers must not rely on which of two colliding
    keys wins.

    Args:
        content_dir: Flat content directory. A missing directory yields
            only the site defaults.
        defaults: Literal fallbacks for the hoisted site keys.
        report: Optional report that records skipped files.
        codec: Codec handed to JSON entities (depth limit).

    Returns:
        The merged build context.
    """
    context: BuildContext = {}

    if content_dir.is_dir():
        for entry in sorted(content_dir.iterdir()):
            if not entry.is_file():
                continue
            suffix = entry.suffix.lower()
            key = entry.stem
            try:
                if suffix in JSON_SUFFIXES:
                    context[key] = JSONEntity(entry, codec).load()
                elif suffix in MARKDOWN_SUFFIXES:
                    text = MarkdownEntity(entry).load()
                    context[key] = text
                    context[key + HTML_SUFFIX] = Markup(to_html(text))
            except (DecodeError, OSError) as exc:
                logger.warning("Could not load content file %s: %s", entry, exc)
                if report is not None:
                    report.skip(entry, str(exc))
    else:
        logger.info("Content directory %s does not exist; using defaults only", content_dir)

    apply_site_defaults(context, defaults or SiteDefaults())
    return context


def apply_site_defaults(context: BuildContext, defaults: SiteDefaults) -> None:
    """Hoist well-known ``site`` keys to top-level context keys.

    When ``site`` is not an object the literal defaults are used. A
    hoisted key missing from ``site`` keeps a value already supplied by a
    content file of the same name (e.g. ``portfolio.json``) before falling
    back to the literal default.
    """
    site = context.get(SITE_KEY)
    if not isinstance(site, dict):
        site = {}

    fallbacks: dict[str, tuple[str, Any]] = {
        "SiteTitle": ("siteTitle", defaults.default_title),
        "WelcomeText": ("welcomeText", defaults.default_welcome_text),
        "CurrentYear": ("currentYear", defaults.default_year),
        "heroImage": ("heroImage", ""),
        "portfolio": ("portfolio", []),
        "ContactInfo": ("contactInfo", None),
    }
    for target, (source, fallback) in fallbacks.items():
        if source in site:
            context[target] = site[source]
        elif target not in context:
            context[target] = fallback

    # about.md wins over site.aboutText
    if "about" in context and "about" + HTML_SUFFIX in context:
        context["aboutText"] = context["about" + HTML_SUFFIX]
    else:
        context["aboutText"] = site.get("aboutText", "")

"""Minimal Markdown to HTML conversion for site content.

Supports ATX headers (``#`` to ``###``), ``**bold**``, ``*italic*``,
links, images, and paragraphs separated by blank lines. Lines inside a
paragraph are joined with ``<br />``. Anything else passes through as
literal text; no HTML escaping is applied.
"""

from __future__ import annotations

import re

HEADER_PATTERN = re.compile(r"^(#{1,3})\s+(.*)$")
BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")
ITALIC_PATTERN = re.compile(r"\*(.+?)\*")
IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]*)\)")
LINK_PATTERN = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")


def _apply_inline(text: str) -> str:
    # Images first so the link pattern does not swallow ``![alt](src)``.
    text = IMAGE_PATTERN.sub(r'<img src="\2" alt="\1" />', text)
    text = LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)
    text = BOLD_PATTERN.sub(r"<strong>\1</strong>", text)
    text = ITALIC_PATTERN.sub(r"<em>\1</em>", text)
    return text


def to_html(markdown_text: str) -> str:
    """Convert Markdown text to an HTML fragment.

    Blocks are joined with newlines, e.g.
    ``"# Hi\\n\\nBody **bold**"`` becomes
    ``"<h1>Hi</h1>\\n<p>Body <strong>bold</strong></p>"``.
    """
    blocks: list[str] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append("<p>" + "<br />".join(paragraph) + "</p>")
            paragraph.clear()

    for line in markdown_text.splitlines():
        stripped = line.strip()
        if not stripped:
            flush()
            continue
        header = HEADER_PATTERN.match(stripped)
        if header:
            flush()
            level = len(header.group(1))
            blocks.append(f"<h{level}>{_apply_inline(header.group(2))}</h{level}>")
            continue
        paragraph.append(_apply_inline(stripped))
    flush()

    return "\n".join(blocks)

"""Shared fixtures: a small on-disk site project."""

import json
import os
from pathlib import Path

import pytest

from quillsite.config import AdminConfig, PathsConfig, QuillsiteConfig

INDEX_TEMPLATE = """{% block content %}
<p>{{ WelcomeText }}</p>
{{ aboutText }}
{% endblock %}
"""

ABOUT_TEMPLATE = """{% block content %}<h2>About {{ SiteTitle }}</h2>{% endblock %}
"""


@pytest.fixture(autouse=True)
def _clear_quillsite_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep QUILLSITE_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("QUILLSITE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a project with content, templates, and an admin entry point."""
    data = tmp_path / "public" / "data"
    data.mkdir(parents=True)
    (data / "site.json").write_text(
        json.dumps({"siteTitle": "Acme", "tagline": "Tools", "featured": True}),
        encoding="utf-8",
    )
    (data / "about.md").write_text("# About\n\nWe make **anvils**.\n", encoding="utf-8")
    (data / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "public" / "admin.cgi").write_text("#!/bin/sh\n", encoding="utf-8")

    templates = tmp_path / "site" / "templates"
    templates.mkdir(parents=True)
    (templates / "index.html").write_text(INDEX_TEMPLATE, encoding="utf-8")
    (templates / "about.html").write_text(ABOUT_TEMPLATE, encoding="utf-8")

    assets = tmp_path / "site" / "assets"
    (assets / "css").mkdir(parents=True)
    (assets / "css" / "style.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def config(project: Path) -> QuillsiteConfig:
    """Config rooted at the sample project, without rebuild-on-save."""
    return QuillsiteConfig(
        paths=PathsConfig(project_root=str(project)),
        admin=AdminConfig(rebuild_on_save=False),
    )

"""Tests for layout composition and rendering."""

from pathlib import Path

import pytest
from markupsafe import Markup

from quillsite.errors import RenderError
from quillsite.templates.engine import compose, load_layout, render

LAYOUT = (
    "<title>{% block title %}{{ SiteTitle }}{% endblock %}</title>"
    "{% block content %}{% endblock %}"
    "<footer>{% block footer %}&copy; {{ CurrentYear }}{% endblock %}</footer>"
)


class TestCompose:
    def test_page_inherits_layout_blocks(self):
        compiled = compose(LAYOUT, "{% block content %}<p>{{ WelcomeText }}</p>{% endblock %}")
        html = render(compiled, {"SiteTitle": "Acme", "WelcomeText": "Hi", "CurrentYear": "2025"})
        assert html == "<title>Acme</title><p>Hi</p><footer>&copy; 2025</footer>"

    def test_page_overrides_block(self):
        page = "{% block content %}x{% endblock %}{% block footer %}custom{% endblock %}"
        html = render(compose(LAYOUT, page), {"SiteTitle": "Acme"})
        assert html.endswith("<footer>custom</footer>")

    def test_missing_content_block(self):
        with pytest.raises(RenderError, match="content"):
            compose(LAYOUT, "{% block footer %}x{% endblock %}")

    def test_syntax_error(self):
        with pytest.raises(RenderError):
            compose(LAYOUT, "{% block content %}{% if %}{% endblock %}")

    def test_explicit_extends_kept(self):
        page = '{% extends "layout.html" %}{% block content %}ok{% endblock %}'
        compiled = compose(LAYOUT, page)
        assert "ok" in render(compiled, {"SiteTitle": "", "CurrentYear": ""})

    def test_include_from_search_path(self, tmp_path: Path):
        (tmp_path / "_card.html").write_text("<div>{{ name }}</div>", encoding="utf-8")
        page = '{% block content %}{% include "_card.html" %}{% endblock %}'
        compiled = compose(LAYOUT, page, search_paths=[tmp_path])
        html = render(compiled, {"SiteTitle": "", "CurrentYear": "", "name": "Ada"})
        assert "<div>Ada</div>" in html

    def test_missing_include_fails_render(self):
        page = '{% block content %}{% include "_card.html" %}{% endblock %}'
        with pytest.raises(RenderError, match="_card.html"):
            render(compose(LAYOUT, page), {"SiteTitle": "", "CurrentYear": ""})


class TestRender:
    def test_strings_are_escaped(self):
        compiled = compose(LAYOUT, "{% block content %}{{ text }}{% endblock %}")
        html = render(compiled, {"SiteTitle": "", "CurrentYear": "", "text": "<script>"})
        assert "&lt;script&gt;" in html

    def test_markup_is_not_escaped(self):
        compiled = compose(LAYOUT, "{% block content %}{{ aboutText }}{% endblock %}")
        html = render(
            compiled, {"SiteTitle": "", "CurrentYear": "", "aboutText": Markup("<p>x</p>")}
        )
        assert "<p>x</p>" in html

    def test_undefined_variable(self):
        compiled = compose(LAYOUT, "{% block content %}{{ missing.field }}{% endblock %}")
        with pytest.raises(RenderError):
            render(compiled, {"SiteTitle": "", "CurrentYear": ""})


class TestLoadLayout:
    def test_bundled_layout_defines_blocks(self):
        source = load_layout()
        for block in ("head", "css", "js", "header", "content", "footer"):
            assert "{% block " + block + " %}" in source

    def test_missing_layout(self, tmp_path: Path):
        with pytest.raises(RenderError):
            load_layout(tmp_path / "nope.html")

    def test_bundled_layout_defaults(self):
        compiled = compose(load_layout(), "{% block content %}body{% endblock %}")
        html = render(compiled, {"SiteTitle": "Acme", "CurrentYear": "2025"})
        assert "<title>Acme</title>" in html
        assert "&copy; 2025 Acme" in html

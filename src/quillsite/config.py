"""Unified configuration loaded from .quillsite.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".quillsite.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "quillsite",
]

MEDIA_EXTENSIONS = [
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
    ".ico", ".mp4", ".webm", ".pdf", ".mp3", ".wav",
]


class PathsConfig(BaseModel):
    """[paths] section. Relative paths resolve against ``project_root``."""

    project_root: str = "."
    content_dir: str = "public/data"
    output_dir: str = "public"
    templates_dir: str = "site/templates"
    assets_dir: str = "site/assets"
    layout: str = ""


class SiteDefaults(BaseModel):
    """[site] section: fallbacks used when site.json omits a key."""

    default_title: str = "Quillsite Sample Site"
    default_welcome_text: str = "Welcome to our website!"
    default_year: str = "2025"


class AdminConfig(BaseModel):
    """[admin] section."""

    enabled: bool = True
    entry_point: str = "admin.cgi"
    action: str = "/admin.cgi"
    rebuild_on_save: bool = True


class FormsConfig(BaseModel):
    """[forms] section."""

    max_depth: int = 64


class MediaConfig(BaseModel):
    """[media] section."""

    url_prefix: str = "/media"
    output_subdir: str = "media"
    extensions: list[str] = Field(default_factory=lambda: list(MEDIA_EXTENSIONS))


class QuillsiteConfig(BaseModel):
    """Top-level configuration model for builds and the admin surface."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    site: SiteDefaults = Field(default_factory=SiteDefaults)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    forms: FormsConfig = Field(default_factory=FormsConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)

    @property
    def project_root(self) -> Path:
        return Path(self.paths.project_root).resolve()

    def resolve(self, value: str) -> Path:
        """Resolve a configured path against the project root."""
        path = Path(value)
        if not path.is_absolute():
            path = self.project_root / path
        return path

    @property
    def content_dir(self) -> Path:
        return self.resolve(self.paths.content_dir)

    @property
    def output_dir(self) -> Path:
        return self.resolve(self.paths.output_dir)

    @property
    def templates_dir(self) -> Path:
        return self.resolve(self.paths.templates_dir)

    @property
    def assets_dir(self) -> Path:
        return self.resolve(self.paths.assets_dir)

    @property
    def layout_path(self) -> Path | None:
        if not self.paths.layout:
            return None
        return self.resolve(self.paths.layout)

    def is_media(self, path: Path) -> bool:
        """Check whether a file name carries an allow-listed media extension."""
        return path.suffix.lower() in {ext.lower() for ext in self.media.extensions}


def load_config(path: str | Path | None = None) -> QuillsiteConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .quillsite.toml in CWD
    3. ~/.config/quillsite/.quillsite.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged QuillsiteConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break

    config = QuillsiteConfig.model_validate(data) if data else QuillsiteConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: QuillsiteConfig, **cli_kwargs: object) -> QuillsiteConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, e.g. ``content_dir``, ``output_dir``,
            ``no_admin``.

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "project_root": ("paths", "project_root"),
        "content_dir": ("paths", "content_dir"),
        "output_dir": ("paths", "output_dir"),
        "templates_dir": ("paths", "templates_dir"),
        "assets_dir": ("paths", "assets_dir"),
        "layout": ("paths", "layout"),
        "rebuild_on_save": ("admin", "rebuild_on_save"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value
        if key == "no_admin" and value:
            data["admin"]["enabled"] = False

    return QuillsiteConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: QuillsiteConfig) -> QuillsiteConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "QUILLSITE_PROJECT_ROOT": ("paths", "project_root"),
        "QUILLSITE_CONTENT_DIR": ("paths", "content_dir"),
        "QUILLSITE_OUTPUT_DIR": ("paths", "output_dir"),
        "QUILLSITE_TEMPLATES_DIR": ("paths", "templates_dir"),
        "QUILLSITE_ASSETS_DIR": ("paths", "assets_dir"),
        "QUILLSITE_LAYOUT": ("paths", "layout"),
        "QUILLSITE_MEDIA_URL_PREFIX": ("media", "url_prefix"),
        "QUILLSITE_ADMIN_ACTION": ("admin", "action"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    rebuild_raw = os.environ.get("QUILLSITE_REBUILD_ON_SAVE")
    if rebuild_raw is not None:
        data["admin"]["rebuild_on_save"] = rebuild_raw.lower() in ("true", "1", "yes")
    depth_raw = os.environ.get("QUILLSITE_MAX_DEPTH")
    if depth_raw is not None:
        data["forms"]["max_depth"] = int(depth_raw)

    return QuillsiteConfig.model_validate(data)

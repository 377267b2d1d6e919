#!/usr/bin/env python3
from __future__ import annotations

import pathlib
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple

from .utils import read_yaml

# ---------- Paths

TEMPLATE_DIR = pathlib.Path(__file__).resolve().parent / "templates"
SITE_CONFIG_NAME = "site.yml"
NAVIGATION_NAME = "navigation.yml"

# ---------- Config

ASSET_DIR_NAME = "assets"
ASSET_SOURCE_DIR_CANDIDATES = ("assets", "_assets")
MAX_TOC_DEPTH = 3
CONTENT_SUFFIXES = (".md", ".markdown", ".ipynb")

DEFAULT_PERMALINKS = {
    "post": "/{year}/{month}/{day}/{slug}/",
    "default": "/{path}/",
}

# Some shared regexes

HTML_SRC_OR_HREF = re.compile(
    r'(?P<attr>\bsrc\b|\bhref\b)\s*=\s*([\'"])(?P<url>[^\'"]+)\2'
)
HEADING_ID = re.compile(r'\s*\{\s*#(?P<id>[-a-z0-9_]+)\s*\}\s*$')
ATTACHMENT_URL = re.compile(r'\battachment:(?P<name>[^)\s]+)')
DATED_FILENAME = re.compile(r'^(?P<date>\d{4}-\d{2}-\d{2})-(?P<slug>.+)$')
EXTERNAL_URL = re.compile(r'^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|//)')


@dataclass(frozen=True)
class SiteConfig:
    """Build settings for one source tree, read from ``site.yml``."""

    source_dir: pathlib.Path
    site: Dict[str, Any] = field(default_factory=dict)
    static_dir: str = "assets"
    templates_dir: str = "_layouts"
    posts_dir: str = "_posts"
    permalinks: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_PERMALINKS)
    )
    exclude: Tuple[str, ...] = ()
    workers: int = 4
    drafts: bool = False

    @classmethod
    def load(cls, source_dir: pathlib.Path, **overrides: Any) -> "SiteConfig":
        source_dir = pathlib.Path(source_dir).resolve()
        raw = read_yaml(source_dir / SITE_CONFIG_NAME)

        permalinks = dict(DEFAULT_PERMALINKS)
        permalinks.update(raw.get("permalinks") or {})

        cfg = cls(
            source_dir=source_dir,
            site=dict(raw.get("site") or {}),
            static_dir=raw.get("static_dir", "assets"),
            templates_dir=raw.get("templates_dir", "_layouts"),
            posts_dir=raw.get("posts_dir", "_posts"),
            permalinks=permalinks,
            exclude=tuple(raw.get("exclude") or ()),
            workers=int(raw.get("workers", 4)),
            drafts=bool(raw.get("drafts", False)),
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(cfg, **overrides) if overrides else cfg

    @property
    def static_root(self) -> pathlib.Path:
        return self.source_dir / self.static_dir

    @property
    def templates_root(self) -> pathlib.Path:
        return self.source_dir / self.templates_dir

    def permalink_pattern(self, layout: str) -> str:
        return self.permalinks.get(layout) or self.permalinks["default"]

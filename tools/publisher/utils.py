from __future__ import annotations

import hashlib
import pathlib
import re
from datetime import date, datetime
from typing import Any, Dict

import yaml

SLUG_RE = re.compile(r"[^a-z0-9-]+")


def slugify(s: str) -> str:
    return re.sub(r"-{2,}", "-", SLUG_RE.sub("-", s.lower()).strip("-")).strip("-")


def read_yaml(path: pathlib.Path) -> Dict[str, Any]:
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        return data
    return {}


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:8]


def _norm_text(s: str) -> str:
    return s.replace('\r\n', '\n').replace('\r', '\n').lstrip('\ufeff')


def _coerce_date_like(v):
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        s = v.strip().strip('"').strip("'")
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(s).date()
        except ValueError:
            return v
    return v


def normalize_frontmatter_dates(
    fm: Dict[str, Any],
    keys=("date", "updated"),
) -> Dict[str, Any]:
    if not isinstance(fm, dict):
        return fm
    for k in keys:
        if k in fm:
            fm[k] = _coerce_date_like(fm[k])
    return fm


from __future__ import annotations

from typing import Any, Dict, Tuple

import yaml

from .errors import MalformedFrontMatter
from .utils import _norm_text, normalize_frontmatter_dates

FENCE = "---"


def parse_frontmatter(text: str, path: str = "<string>") -> Tuple[Dict[str, Any], str]:
    """Split ``text`` into (metadata, body).

    The header must open on the very first line with a ``---`` fence and
    close with the next line that is exactly ``---``. Text without an
    opening fence is returned untouched with empty metadata.
    """
    s = _norm_text(text)
    if s.split("\n", 1)[0].rstrip() != FENCE:
        return {}, text

    lines = s.splitlines(keepends=True)
    for i in range(1, len(lines)):
        if lines[i].rstrip() == FENCE:
            fm_text = "".join(lines[1:i])
            body = "".join(lines[i + 1:])
            return _load_block(fm_text, path), body

    raise MalformedFrontMatter(path, "opening '---' has no closing fence", location="1")


def _load_block(fm_text: str, path: str) -> Dict[str, Any]:
    try:
        fm = yaml.safe_load(fm_text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        # +2: the opening fence is line 1
        location = str(mark.line + 2) if mark is not None else None
        problem = getattr(e, "problem", None) or str(e)
        raise MalformedFrontMatter(path, problem, location=location) from e
    except ValueError as e:
        # well-formed YAML naming an impossible date, e.g. 2023-13-45
        raise MalformedFrontMatter(path, str(e)) from e

    if fm is None:
        return {}
    if not isinstance(fm, dict):
        raise MalformedFrontMatter(
            path, f"expected a mapping, got {type(fm).__name__}"
        )
    return normalize_frontmatter_dates(fm)


def frontmatter_block(data: Dict[str, Any]) -> str:
    dumped = yaml.safe_dump(
        normalize_frontmatter_dates(dict(data)), sort_keys=False, allow_unicode=True
    ).rstrip()
    return f"---\n{dumped}\n---\n\n"

from __future__ import annotations

import base64
import pathlib
from typing import Any, Dict, Tuple

import nbformat
from nbconvert import MarkdownExporter
from nbformat.validator import ValidationError, validate

from .config import ASSET_DIR_NAME, ATTACHMENT_URL
from .errors import MalformedNotebook
from .frontmatter import parse_frontmatter
from .utils import _norm_text, content_hash, normalize_frontmatter_dates, slugify
from .visibility import filter_and_apply_visibility

MIME_SUFFIXES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "image/webp": ".webp",
}

# Notebook-level metadata keys that map straight onto front matter.
METADATA_KEYS = ("title", "date", "layout", "permalink", "categories", "tags", "slug", "published")


def extract_markdown_attachments(
    cell, attachments: Dict[str, bytes]
) -> str:
    """Rewrite ``attachment:foo.png`` URLs to hashed asset names, keeping the bytes."""
    text = cell.get("source", "")
    atts = cell.get("attachments") or {}

    def _repl(m):
        name = m.group("name")
        blob = atts.get(name)
        if not blob:
            return m.group(0)
        mime, b64 = next(iter(blob.items()))
        ext = MIME_SUFFIXES.get(mime, ".bin")
        data = base64.b64decode(b64)
        stem = slugify(pathlib.PurePosixPath(name).stem) or "attachment"
        rel = f"{ASSET_DIR_NAME}/att-{stem}.{content_hash(data)}{ext}"
        attachments[rel] = data
        return rel

    return ATTACHMENT_URL.sub(_repl, text)


def _leading_frontmatter(nb, doc_id: str) -> Dict[str, Any]:
    """Front matter kept in a leading raw cell, which is then dropped."""
    if not nb.cells or nb.cells[0].get("cell_type") != "raw":
        return {}
    source = _norm_text(nb.cells[0].get("source", ""))
    fm, rest = parse_frontmatter(source, doc_id)
    if not fm and rest == source:
        return {}
    nb.cells = nb.cells[1:]
    return fm


def load_notebook(
    path: pathlib.Path, doc_id: str
) -> Tuple[Dict[str, Any], str, Dict[str, bytes]]:
    """Convert a notebook into (front matter, markdown body, attachments).

    Attachments and rendered output blobs are returned in memory, keyed
    by the relative ``assets/...`` URL the body refers to them with.
    """
    try:
        nb = nbformat.read(str(path), as_version=4)
        validate(nb)
    except (ValidationError, ValueError) as e:
        raise MalformedNotebook(doc_id, (str(e).splitlines() or [type(e).__name__])[0]) from e

    fm = _leading_frontmatter(nb, doc_id)
    for key in METADATA_KEYS:
        if key in nb.metadata and key not in fm:
            fm[key] = nb.metadata[key]

    filter_and_apply_visibility(nb)

    attachments: Dict[str, bytes] = {}
    for cell in nb.cells:
        if cell.get("cell_type") != "markdown":
            continue
        cell["source"] = extract_markdown_attachments(cell, attachments)
        cell.pop("attachments", None)

    body, resources = MarkdownExporter().from_notebook_node(nb)

    # deterministic names for output blobs
    for name, data in sorted((resources.get("outputs") or {}).items()):
        p = pathlib.PurePosixPath(name)
        rel = f"{ASSET_DIR_NAME}/{slugify(p.stem) or 'output'}.{content_hash(data)}{p.suffix}"
        attachments[rel] = data
        body = body.replace(f"({name})", f"({rel})")

    return normalize_frontmatter_dates(fm), _norm_text(body), attachments

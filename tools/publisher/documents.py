from __future__ import annotations

import fnmatch
import pathlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .config import CONTENT_SUFFIXES, DATED_FILENAME, SiteConfig
from .errors import ErrorCollector, MalformedFrontMatter, PublishError
from .frontmatter import frontmatter_block, parse_frontmatter
from .git import git_last_commit_date
from .markdown_processing import first_heading, normalize
from .nodes import Block
from .notebooks import load_notebook
from .utils import _coerce_date_like, _norm_text, slugify


@dataclass(frozen=True)
class Document:
    """One source file, parsed and normalized. Never mutated afterwards."""

    doc_id: str
    source: pathlib.Path
    meta: Dict[str, Any]
    body: str
    tree: Tuple[Block, ...]
    layout: str
    collection: str
    title: str
    slug: str
    date: Optional[date] = None
    categories: Tuple[str, ...] = ()
    attachments: Dict[str, bytes] = field(default_factory=dict)

    @property
    def published(self) -> bool:
        return self.meta.get("published", True) is not False

    @property
    def directory(self) -> str:
        """Source directory of the document, relative to the source root."""
        parent = pathlib.PurePosixPath(self.doc_id).parent.as_posix()
        return "" if parent == "." else parent


def discover_sources(config: SiteConfig) -> List[pathlib.Path]:
    root = config.source_dir
    skip_roots = {config.static_dir, config.templates_dir}
    found = []
    for p in root.rglob("*"):
        if not p.is_file() or p.suffix.lower() not in CONTENT_SUFFIXES:
            continue
        rel = p.relative_to(root)
        parts = rel.parts
        if parts[0] in skip_roots:
            continue
        if any(part.startswith(".") for part in parts):
            continue
        if any(part.startswith("_") and part != config.posts_dir for part in parts[:-1]):
            continue
        if any(fnmatch.fnmatch(rel.as_posix(), pat) for pat in config.exclude):
            continue
        found.append(p)
    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


def _categories(fm: Dict[str, Any]) -> Tuple[str, ...]:
    raw = fm.get("categories", fm.get("category")) or []
    if isinstance(raw, str):
        raw = raw.split()
    return tuple(str(c) for c in raw)


def _document_date(fm, stem: str, source: pathlib.Path, doc_id: str) -> Optional[date]:
    if fm.get("date") is not None:
        value = _coerce_date_like(fm["date"])
        if not isinstance(value, date):
            raise MalformedFrontMatter(
                doc_id, f"date {fm['date']!r} is not YYYY-MM-DD", location="date"
            )
        return value
    m = DATED_FILENAME.match(stem)
    if m:
        try:
            return date.fromisoformat(m.group("date"))
        except ValueError:
            pass
    return git_last_commit_date(source)


def _document_slug(fm, stem: str, doc_id: str) -> str:
    if fm.get("slug"):
        return slugify(str(fm["slug"]))
    m = DATED_FILENAME.match(stem)
    if m:
        stem = m.group("slug")
    if stem == "index":
        parent = pathlib.PurePosixPath(doc_id).parent.name
        stem = parent or "index"
    return slugify(stem) or "index"


def load_document(source: pathlib.Path, config: SiteConfig) -> Document:
    doc_id = source.relative_to(config.source_dir).as_posix()
    attachments: Dict[str, bytes] = {}

    if source.suffix.lower() == ".ipynb":
        fm, body, attachments = load_notebook(source, doc_id)
    else:
        try:
            text = _norm_text(source.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise MalformedFrontMatter(
                doc_id, f"not valid UTF-8 ({e.reason} at byte {e.start})"
            ) from e
        fm, body = parse_frontmatter(text, doc_id)

    # one traversal; the tree is frozen from here on
    tree = tuple(normalize(body))

    in_posts = doc_id.split("/", 1)[0] == config.posts_dir
    layout = str(fm.get("layout") or ("post" if in_posts else "page"))
    stem = source.stem
    slug = _document_slug(fm, stem, doc_id)

    return Document(
        doc_id=doc_id,
        source=source,
        meta=fm,
        body=body,
        tree=tree,
        layout=layout,
        collection=str(fm.get("collection") or layout),
        title=str(fm.get("title") or first_heading(tree) or slug.replace("-", " ").title()),
        slug=slug,
        date=_document_date(fm, stem, source, doc_id),
        categories=_categories(fm),
        attachments=attachments,
    )


def load_documents(
    sources: List[pathlib.Path],
    config: SiteConfig,
    errors: ErrorCollector,
) -> List[Document]:
    """Parse and normalize every source on a worker pool.

    Returns once all sources are done. Failures are collected rather than
    raised so one run reports every malformed file.
    """
    docs: List[Document] = []
    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as pool:
        futures = [pool.submit(load_document, s, config) for s in sources]
        for future in futures:
            try:
                docs.append(future.result())
            except PublishError as e:
                errors.add(e)
    return sorted(docs, key=lambda d: d.doc_id)


def new_post(config: SiteConfig, title: str, on: date, layout: str = "post") -> pathlib.Path:
    """Create ``_posts/YYYY-MM-DD-<slug>.md`` with a front matter header."""
    slug = slugify(title) or "post"
    path = config.source_dir / config.posts_dir / f"{on.isoformat()}-{slug}.md"
    if path.exists():
        raise FileExistsError(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fm = {"layout": layout, "title": title, "date": on, "categories": []}
    path.write_text(frontmatter_block(fm), encoding="utf-8")
    return path

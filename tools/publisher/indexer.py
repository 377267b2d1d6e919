from __future__ import annotations

import pathlib
import re
import string
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .assets import list_static_tree
from .config import NAVIGATION_NAME, SiteConfig
from .documents import Document
from .errors import DuplicatePermalink, ErrorCollector, MalformedFrontMatter
from .utils import slugify

DATE_FIELDS = {"year", "month", "day"}
PATTERN_FIELDS = DATE_FIELDS | {"slug", "path", "category", "collection"}


def normalize_url(url: str) -> str:
    url = "/" + url.strip().lstrip("/")
    return re.sub(r"/{2,}", "/", url)


def url_to_output_path(url: str) -> str:
    """``/a/b/`` -> ``a/b/index.html``; ``/feed.xml`` stays a file."""
    rel = normalize_url(url).lstrip("/")
    if not rel or rel.endswith("/"):
        return rel + "index.html"
    if "." not in rel.rsplit("/", 1)[-1]:
        return rel + "/index.html"
    return rel


class PermalinkTable:
    """doc_id -> URL, with the reverse lookup used to resolve site-root links."""

    def __init__(self):
        self._by_doc: Dict[str, str] = {}
        self._by_output: Dict[str, str] = {}

    def add(self, doc_id: str, url: str) -> None:
        self._by_doc[doc_id] = url
        self._by_output[url_to_output_path(url)] = doc_id

    def url_for(self, doc_id: str) -> Optional[str]:
        return self._by_doc.get(doc_id)

    def doc_for(self, url: str) -> Optional[str]:
        return self._by_output.get(url_to_output_path(url))

    def output_path(self, doc_id: str) -> str:
        return url_to_output_path(self._by_doc[doc_id])

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(sorted(self._by_doc.items()))

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._by_doc

    def __len__(self) -> int:
        return len(self._by_doc)


@dataclass
class SiteIndex:
    documents: Dict[str, Document]
    collections: Dict[str, List[Document]]
    categories: Dict[str, List[Document]]
    permalinks: PermalinkTable
    neighbours: Dict[str, Tuple[Optional[Document], Optional[Document]]] = field(
        default_factory=dict
    )


def sort_key(doc: Document):
    # newest first, undated last, path breaks ties
    return (doc.date is None, -doc.date.toordinal() if doc.date else 0, doc.doc_id)


def _path_field(doc: Document) -> str:
    p = pathlib.PurePosixPath(doc.doc_id).with_suffix("")
    if p.name == "index":
        p = p.parent
    s = p.as_posix()
    return "" if s == "." else s


def _pattern_fields(pattern: str) -> set:
    return {name for _, name, _, _ in string.Formatter().parse(pattern) if name}


def expand_permalink(doc: Document, pattern: str) -> str:
    unknown = _pattern_fields(pattern) - PATTERN_FIELDS
    if unknown:
        raise ValueError(f"unknown permalink placeholder(s) {sorted(unknown)} in {pattern!r}")
    values = {
        "slug": doc.slug,
        "path": _path_field(doc),
        "category": slugify(doc.categories[0]) if doc.categories else "",
        "collection": doc.collection,
    }
    if doc.date is not None:
        values.update(
            year=f"{doc.date.year:04d}",
            month=f"{doc.date.month:02d}",
            day=f"{doc.date.day:02d}",
        )
    return normalize_url(pattern.format_map(values))


def permalink_for(doc: Document, config: SiteConfig) -> str:
    explicit = doc.meta.get("permalink")
    if explicit:
        try:
            return expand_permalink(doc, str(explicit))
        except (KeyError, ValueError) as e:
            raise MalformedFrontMatter(
                doc.doc_id, f"bad permalink {explicit!r}: {e}", location="permalink"
            ) from e
    pattern = config.permalink_pattern(doc.layout)
    if doc.date is None and _pattern_fields(pattern) & DATE_FIELDS:
        pattern = config.permalinks["default"]
    return expand_permalink(doc, pattern)


def _ordered_groups(pairs: Iterable[Tuple[str, Document]]) -> Dict[str, List[Document]]:
    groups: Dict[str, List[Document]] = {}
    for name, doc in pairs:
        groups.setdefault(name, []).append(doc)
    return {name: sorted(docs, key=sort_key) for name, docs in sorted(groups.items())}


def reserved_outputs(config: SiteConfig) -> Dict[str, str]:
    """Output paths written by the build itself, not by any document."""
    reserved = {
        rel: f"static file {rel}"
        for rel in list_static_tree(config.static_root, config.static_dir)
    }
    reserved[NAVIGATION_NAME] = "the navigation index"
    return reserved


def build_index(
    docs: List[Document], config: SiteConfig, errors: ErrorCollector
) -> SiteIndex:
    """Group, order and assign permalinks to the complete document set."""
    claims: Dict[str, List[Tuple[str, str]]] = {}
    for doc in sorted(docs, key=lambda d: d.doc_id):
        try:
            url = permalink_for(doc, config)
        except MalformedFrontMatter as e:
            errors.add(e)
            continue
        claims.setdefault(url_to_output_path(url), []).append((doc.doc_id, url))

    reserved = reserved_outputs(config)
    table = PermalinkTable()
    for path, claimants in sorted(claims.items()):
        if path in reserved:
            for doc_id, url in claimants:
                errors.add(DuplicatePermalink(doc_id, url, [reserved[path]]))
            continue
        if len(claimants) == 1:
            table.add(*claimants[0])
            continue
        ids = [doc_id for doc_id, _ in claimants]
        for doc_id, url in claimants:
            errors.add(DuplicatePermalink(doc_id, url, [o for o in ids if o != doc_id]))

    collections = _ordered_groups((d.collection, d) for d in docs)
    categories = _ordered_groups((c, d) for d in docs for c in d.categories)

    neighbours = {}
    for members in collections.values():
        for i, doc in enumerate(members):
            older = members[i + 1] if i + 1 < len(members) else None
            newer = members[i - 1] if i > 0 else None
            neighbours[doc.doc_id] = (older, newer)

    return SiteIndex(
        documents={d.doc_id: d for d in sorted(docs, key=lambda d: d.doc_id)},
        collections=collections,
        categories=categories,
        permalinks=table,
        neighbours=neighbours,
    )


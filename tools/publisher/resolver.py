from __future__ import annotations

import posixpath
from dataclasses import replace
from typing import Callable, Dict, Tuple
from urllib.parse import unquote, urljoin, urlsplit

from .assets import asset_copy_name, is_relative_local, resolve_asset_candidate
from .config import CONTENT_SUFFIXES, HTML_SRC_OR_HREF, SiteConfig
from .documents import Document
from .errors import DanglingReference, ErrorCollector
from .indexer import SiteIndex
from .nodes import Image, InlineHtml, InlineImage, Link, RawHtml, map_tree


def relative_doc_id(base_dir: str, target: str) -> str:
    """Join a relative link target onto the linking document's directory."""
    return posixpath.normpath(posixpath.join(base_dir, target)).lstrip("/")


class _DocumentResolver:
    """Rewrites the link and asset targets of one document."""

    def __init__(self, doc: Document, index: SiteIndex, config: SiteConfig,
                 errors: ErrorCollector, files: Dict[str, bytes], log: Callable):
        self.doc = doc
        self.index = index
        self.config = config
        self.errors = errors
        self.files = files
        self.log = log
        self.page_dir = posixpath.dirname(index.permalinks.output_path(doc.doc_id))

    def target(self, target: str, link: bool = False) -> str:
        if not is_relative_local(target):
            return target
        parts = urlsplit(target)
        path = unquote(parts.path)
        tail = (f"?{parts.query}" if parts.query else "") + (
            f"#{parts.fragment}" if parts.fragment else ""
        )
        if not path:
            return target

        if path.startswith("/"):
            return self._site_root(path, target)
        if posixpath.splitext(path)[1].lower() in CONTENT_SUFFIXES:
            return self._content(path, target, tail)
        if link and (path.endswith("/") or not posixpath.splitext(path)[1]):
            return self._page(path, target, tail)
        return self._asset(path, target, tail)

    def _dangling(self, target: str) -> str:
        self.errors.add(DanglingReference(self.doc.doc_id, target))
        return target

    def _site_root(self, path: str, target: str) -> str:
        if self.index.permalinks.doc_for(path) is not None:
            return target
        rel = path.lstrip("/")
        if rel.startswith(f"{self.config.static_dir}/") and (self.config.source_dir / rel).is_file():
            return target
        return self._dangling(target)

    def _content(self, path: str, target: str, tail: str) -> str:
        doc_id = relative_doc_id(self.doc.directory, path)
        url = self.index.permalinks.url_for(doc_id)
        if url is None:
            return self._dangling(target)
        return url + tail

    def _page(self, path: str, target: str, tail: str) -> str:
        # extension-less links are page URLs relative to this page's URL
        base = self.index.permalinks.url_for(self.doc.doc_id)
        doc_id = self.index.permalinks.doc_for(urljoin(base, path))
        if doc_id is None:
            return self._dangling(target)
        return self.index.permalinks.url_for(doc_id) + tail

    def _page_url(self, rel: str) -> str:
        out = posixpath.join(self.page_dir, rel) if self.page_dir else rel
        return "/" + out

    def _asset(self, path: str, target: str, tail: str) -> str:
        rel = posixpath.normpath(path)
        if rel in self.doc.attachments:
            out = posixpath.join(self.page_dir, rel) if self.page_dir else rel
            self.files[out] = self.doc.attachments[rel]
            return self._page_url(rel) + tail

        static_root = self.config.static_root.resolve()
        src = resolve_asset_candidate(self.doc.source.parent, path)
        if src is None and (static_root / path).is_file():
            src = (static_root / path).resolve()
        if src is None:
            # asset references are reported, not enforced
            self.log(f"! {self.doc.doc_id}: asset not found: {target}")
            return target

        if src.is_relative_to(static_root):
            return "/" + posixpath.join(
                self.config.static_dir, src.relative_to(static_root).as_posix()
            ) + tail

        data = src.read_bytes()
        name = asset_copy_name(src, data)
        out = posixpath.join(self.page_dir, name) if self.page_dir else name
        self.files[out] = data
        return self._page_url(name) + tail

    def inline(self, node):
        if isinstance(node, Link):
            return replace(node, href=self.target(node.href, link=True))
        if isinstance(node, InlineImage):
            return replace(node, src=self.target(node.src))
        if isinstance(node, InlineHtml):
            return replace(node, html=self._html(node.html))
        return node

    def _html(self, html: str) -> str:
        def _repl(m):
            url = self.target(m.group("url"), link=m.group("attr") == "href")
            return f'{m.group("attr")}="{url}"'
        return HTML_SRC_OR_HREF.sub(_repl, html)

    def block(self, node):
        if isinstance(node, Image):
            return replace(node, src=self.target(node.src))
        if isinstance(node, RawHtml):
            return replace(node, html=self._html(node.html))
        return node

    def resolve(self) -> Document:
        return replace(self.doc, tree=map_tree(self.doc.tree, self.inline, self.block))


def resolve_documents(
    index: SiteIndex,
    config: SiteConfig,
    errors: ErrorCollector,
    log: Callable = print,
) -> Tuple[Dict[str, Document], Dict[str, bytes]]:
    """Rewrite every link/asset target against the finished index.

    Returns the resolved documents and the copied asset files keyed by
    output path. Every dangling internal reference is recorded in
    ``errors``; resolving continues past them.
    """
    resolved: Dict[str, Document] = {}
    files: Dict[str, bytes] = {}
    for doc_id, doc in index.documents.items():
        if doc_id not in index.permalinks:
            continue
        resolved[doc_id] = _DocumentResolver(doc, index, config, errors, files, log).resolve()
    return resolved, files

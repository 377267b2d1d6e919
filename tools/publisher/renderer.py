from __future__ import annotations

import pathlib
from typing import Any, Dict, List, Mapping, Optional, Sequence

import mistune
from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    select_autoescape,
)
from markupsafe import Markup

from .config import TEMPLATE_DIR
from .documents import Document
from .errors import UnknownLayout
from .indexer import SiteIndex
from .markdown_processing import collect_toc
from .nodes import (
    Code,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    InlineHtml,
    InlineImage,
    LineBreak,
    Link,
    ListBlock,
    Paragraph,
    Quote,
    RawHtml,
    Rule,
    Strong,
    Text,
)


class PageRenderer(mistune.HTMLRenderer):
    """mistune's HTML renderer plus the ``figure`` block for lone images.

    Raw HTML in sources is trusted and passed through.
    """

    def __init__(self):
        super().__init__(escape=False)

    def figure(self, src: str, alt: str = "", title: str = "") -> str:
        img = self.image(self.text(alt), src, title or None)
        return f"<figure>{img}</figure>\n"


def _inline_tokens(inlines) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for node in inlines:
        if isinstance(node, Text):
            out.append({"type": "text", "raw": node.text})
        elif isinstance(node, Code):
            out.append({"type": "codespan", "raw": node.code})
        elif isinstance(node, Emphasis):
            out.append({"type": "emphasis", "children": _inline_tokens(node.children)})
        elif isinstance(node, Strong):
            out.append({"type": "strong", "children": _inline_tokens(node.children)})
        elif isinstance(node, Link):
            out.append({
                "type": "link",
                "children": _inline_tokens(node.children),
                "attrs": {"url": node.href, "title": node.title or None},
            })
        elif isinstance(node, InlineImage):
            out.append({
                "type": "image",
                "children": [{"type": "text", "raw": node.alt}],
                "attrs": {"url": node.src, "title": node.title or None},
            })
        elif isinstance(node, LineBreak):
            out.append({"type": "linebreak"})
        elif isinstance(node, InlineHtml):
            out.append({"type": "inline_html", "raw": node.html})
    return out


def _block_tokens(tree, tight: bool = False) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for block in tree:
        if isinstance(block, Heading):
            out.append({
                "type": "heading",
                "children": _inline_tokens(block.children),
                "attrs": {"level": block.level, "id": block.id},
            })
        elif isinstance(block, Paragraph):
            # tight list items render without <p>
            out.append({
                "type": "block_text" if tight else "paragraph",
                "children": _inline_tokens(block.children),
            })
        elif isinstance(block, CodeBlock):
            tok: Dict[str, Any] = {
                "type": "block_code",
                "raw": block.code + "\n" if block.code else "",
            }
            if block.language:
                tok["attrs"] = {"info": block.language}
            out.append(tok)
        elif isinstance(block, Image):
            out.append({
                "type": "figure",
                "attrs": {"src": block.src, "alt": block.alt, "title": block.title},
            })
        elif isinstance(block, ListBlock):
            attrs: Dict[str, Any] = {"ordered": block.ordered}
            if block.ordered and block.start != 1:
                attrs["start"] = block.start
            out.append({
                "type": "list",
                "children": [
                    {"type": "list_item", "children": _block_tokens(item, block.tight)}
                    for item in block.items
                ],
                "attrs": attrs,
            })
        elif isinstance(block, Quote):
            out.append({"type": "block_quote", "children": _block_tokens(block.children)})
        elif isinstance(block, RawHtml):
            out.append({"type": "block_html", "raw": block.html})
        elif isinstance(block, Rule):
            out.append({"type": "thematic_break"})
    return out


def render_blocks(tree) -> Markup:
    """HTML for a resolved document tree. Same tree, same bytes."""
    html = PageRenderer()(_block_tokens(tree), mistune.BlockState())
    return Markup(html)


class TemplateSet:
    """The layouts one build renders with.

    Site templates shadow the bundled defaults; ``templates`` (name ->
    source) shadow both and exist mainly for tests.
    """

    def __init__(
        self,
        directories: Sequence[pathlib.Path] = (),
        templates: Optional[Mapping[str, str]] = None,
        include_defaults: bool = True,
    ):
        self.directories = [pathlib.Path(d) for d in directories]
        self.templates = dict(templates or {})
        self.include_defaults = include_defaults

    def environment(self) -> Environment:
        loaders = [DictLoader(self.templates)]
        loaders += [FileSystemLoader(str(d)) for d in self.directories if d.is_dir()]
        if self.include_defaults:
            loaders.append(FileSystemLoader(str(TEMPLATE_DIR)))
        return Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )


def page_summary(doc: Document, url: Optional[str]) -> Dict[str, Any]:
    return {
        "title": doc.title,
        "url": url,
        "date": doc.date,
        "categories": list(doc.categories),
        "doc_id": doc.doc_id,
    }


class Renderer:
    """Applies layouts to resolved documents.

    Holds its own Jinja2 environment, so a template cache lives exactly as
    long as the build that created the renderer.
    """

    def __init__(self, templates: TemplateSet, site: Optional[Dict[str, Any]] = None):
        self.env = templates.environment()
        self.site = dict(site or {})

    def layout_template(self, doc: Document):
        name = f"{doc.layout}.html"
        try:
            return self.env.get_template(name)
        except TemplateNotFound as e:
            if e.name != name:
                raise
            raise UnknownLayout(doc.doc_id, doc.layout) from e

    def context(self, doc: Document, index: SiteIndex) -> Dict[str, Any]:
        table = index.permalinks

        def _summaries(docs: List[Document]):
            return [page_summary(d, table.url_for(d.doc_id)) for d in docs if d.doc_id in table]

        older, newer = index.neighbours.get(doc.doc_id, (None, None))
        page = dict(doc.meta)
        page.update(
            title=doc.title,
            url=table.url_for(doc.doc_id),
            date=doc.date,
            slug=doc.slug,
            layout=doc.layout,
            collection=doc.collection,
            categories=list(doc.categories),
            doc_id=doc.doc_id,
            toc=collect_toc(doc.tree),
        )
        return {
            "site": self.site,
            "page": page,
            "content": render_blocks(doc.tree),
            "prev": page_summary(older, table.url_for(older.doc_id)) if older else None,
            "next": page_summary(newer, table.url_for(newer.doc_id)) if newer else None,
            "collections": {name: _summaries(docs) for name, docs in index.collections.items()},
            "categories": {name: _summaries(docs) for name, docs in index.categories.items()},
            "url_for": table.url_for,
        }

    def render(self, doc: Document, index: SiteIndex) -> bytes:
        template = self.layout_template(doc)
        return template.render(self.context(doc, index)).encode("utf-8")

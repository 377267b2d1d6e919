from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import mistune

from .config import HEADING_ID, MAX_TOC_DEPTH
from .nodes import (
    Block,
    Code,
    CodeBlock,
    Emphasis,
    Heading,
    Image,
    Inline,
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
    plain_text,
)
from .utils import _norm_text, slugify

Token = Dict[str, Any]


def slugify_heading(text: str) -> str:
    return slugify(text) or "section"


def _explicit_heading_ids(md, state) -> None:
    # "## Title {#anchor}": strip the marker before inline parsing
    def _walk(tokens):
        for tok in tokens:
            if tok["type"] == "heading" and "text" in tok:
                m = HEADING_ID.search(tok["text"])
                if m:
                    tok["text"] = tok["text"][:m.start()]
                    tok["attrs"]["id"] = m.group("id")
            _walk(tok.get("children") or ())

    _walk(state.tokens)


def create_parser() -> mistune.Markdown:
    """A CommonMark parser returning mistune's token tree.

    One per call; mistune keeps parse caches on the instance and
    documents are normalized on several threads at once.
    """
    md = mistune.create_markdown(renderer="ast")
    md.before_render_hooks.append(_explicit_heading_ids)
    return md


def _inlines(tokens: List[Token]) -> Tuple[Inline, ...]:
    out: List[Inline] = []
    for tok in tokens:
        kind = tok["type"]
        attrs = tok.get("attrs") or {}
        if kind == "text":
            node: Inline = Text(tok["raw"])
        elif kind == "softbreak":
            node = Text("\n")
        elif kind == "linebreak":
            node = LineBreak()
        elif kind == "codespan":
            node = Code(tok["raw"])
        elif kind == "emphasis":
            node = Emphasis(_inlines(tok["children"]))
        elif kind == "strong":
            node = Strong(_inlines(tok["children"]))
        elif kind == "link":
            node = Link(attrs["url"], _inlines(tok["children"]), attrs.get("title") or "")
        elif kind == "image":
            alt = plain_text(_inlines(tok["children"]))
            node = InlineImage(attrs["url"], alt, attrs.get("title") or "")
        elif kind == "inline_html":
            node = InlineHtml(tok["raw"])
        elif "children" in tok:
            out.extend(_inlines(tok["children"]))
            continue
        else:
            node = Text(tok.get("raw", ""))

        if isinstance(node, Text) and out and isinstance(out[-1], Text):
            out[-1] = Text(out[-1].text + node.text)
        else:
            out.append(node)
    return tuple(out)


def parse_inlines(text: str) -> Tuple[Inline, ...]:
    md = create_parser()
    return _inlines(md.inline(text, {"ref_links": {}}))


class _HeadingIds:
    """Per-document registry handing out unique anchor ids."""

    def __init__(self):
        self.issued: Set[str] = set()

    def claim(self, base: str) -> str:
        hid, n = base, 0
        while hid in self.issued:
            n += 1
            hid = f"{base}-{n}"
        self.issued.add(hid)
        return hid


def _paragraph(children: Tuple[Inline, ...]) -> Block:
    if len(children) == 1 and isinstance(children[0], InlineImage):
        img = children[0]
        return Image(img.src, img.alt, img.title)
    return Paragraph(children)


def _blocks(tokens: List[Token], ids: _HeadingIds) -> Iterator[Block]:
    for tok in tokens:
        kind = tok["type"]
        attrs = tok.get("attrs") or {}
        if kind == "heading":
            children = _inlines(tok["children"])
            text = plain_text(children).strip()
            hid = ids.claim(attrs.get("id") or slugify_heading(text))
            yield Heading(attrs["level"], text, hid, children)
        elif kind in ("paragraph", "block_text"):
            yield _paragraph(_inlines(tok["children"]))
        elif kind == "block_code":
            code = tok["raw"]
            if tok.get("style") == "fenced" and code.endswith("\n"):
                code = code[:-1]
            info = (attrs.get("info") or "").split()
            yield CodeBlock(code, info[0] if info else "")
        elif kind == "thematic_break":
            yield Rule()
        elif kind == "block_quote":
            yield Quote(tuple(_blocks(tok["children"], ids)))
        elif kind == "block_html":
            yield RawHtml(tok["raw"].rstrip("\n"))
        elif kind == "list":
            items = tuple(
                tuple(_blocks(item["children"], ids))
                for item in tok["children"]
            )
            yield ListBlock(
                bool(attrs.get("ordered")),
                items,
                attrs.get("start", 1),
                tok.get("tight", True),
            )


def normalize(body: str) -> Iterator[Block]:
    """Yield the block nodes of ``body`` in source order.

    Fenced code is passed through verbatim. Heading ids are unique within
    this call; each call starts a fresh registry.
    """
    tokens = create_parser()(_norm_text(body))
    yield from _blocks(tokens, _HeadingIds())


def collect_toc(tree, max_depth: int = MAX_TOC_DEPTH) -> List[Dict[str, Any]]:
    return [
        {"level": b.level, "text": b.text, "id": b.id}
        for b in tree
        if isinstance(b, Heading) and b.level <= max_depth
    ]


def first_heading(tree, level: int = 1) -> Optional[str]:
    for b in tree:
        if isinstance(b, Heading) and b.level == level:
            return b.text
    return None

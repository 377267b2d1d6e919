"""Document tree nodes produced by the normalizer.

Block nodes hold inline sequences as tuples so a normalized tree can be
shared between build phases without copying. Phases that rewrite targets
build new nodes with ``dataclasses.replace``.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Tuple, Union


# ---------- Inline nodes

@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Code:
    code: str


@dataclass(frozen=True)
class Emphasis:
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class Strong:
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class Link:
    href: str
    children: Tuple["Inline", ...]
    title: str = ""


@dataclass(frozen=True)
class InlineImage:
    src: str
    alt: str = ""
    title: str = ""


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class InlineHtml:
    html: str


Inline = Union[Text, Code, Emphasis, Strong, Link, InlineImage, LineBreak, InlineHtml]


# ---------- Block nodes

@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    id: str
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class Paragraph:
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class CodeBlock:
    code: str
    language: str = ""


@dataclass(frozen=True)
class Image:
    src: str
    alt: str = ""
    title: str = ""


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: Tuple[Tuple["Block", ...], ...]
    start: int = 1
    tight: bool = True


@dataclass(frozen=True)
class Quote:
    children: Tuple["Block", ...]


@dataclass(frozen=True)
class RawHtml:
    html: str


@dataclass(frozen=True)
class Rule:
    pass


Block = Union[Heading, Paragraph, CodeBlock, Image, ListBlock, Quote, RawHtml, Rule]


def plain_text(inlines: Iterable[Inline]) -> str:
    out = []
    for node in inlines:
        if isinstance(node, Text):
            out.append(node.text)
        elif isinstance(node, Code):
            out.append(node.code)
        elif isinstance(node, (Emphasis, Strong, Link)):
            out.append(plain_text(node.children))
        elif isinstance(node, InlineImage):
            out.append(node.alt)
        elif isinstance(node, LineBreak):
            out.append("\n")
    return "".join(out)


def iter_inlines(inlines: Iterable[Inline]):
    for node in inlines:
        yield node
        if isinstance(node, (Emphasis, Strong, Link)):
            yield from iter_inlines(node.children)


def iter_blocks(tree: Iterable[Block]):
    """Every block of ``tree``, including those nested in quotes and lists."""
    for block in tree:
        yield block
        if isinstance(block, Quote):
            yield from iter_blocks(block.children)
        elif isinstance(block, ListBlock):
            for item in block.items:
                yield from iter_blocks(item)


def iter_tree_inlines(tree: Iterable[Block]):
    """Every inline node of every block, depth first, in source order."""
    for block in iter_blocks(tree):
        if isinstance(block, (Heading, Paragraph)):
            yield from iter_inlines(block.children)


def map_inlines(inlines: Tuple[Inline, ...], fn: Callable[[Inline], Inline]) -> Tuple[Inline, ...]:
    out = []
    for node in inlines:
        if isinstance(node, (Emphasis, Strong, Link)):
            node = replace(node, children=map_inlines(node.children, fn))
        out.append(fn(node))
    return tuple(out)


def map_tree(
    tree: Iterable[Block],
    inline_fn: Callable[[Inline], Inline],
    block_fn: Callable[[Block], Block],
) -> Tuple[Block, ...]:
    """Rebuild ``tree`` applying ``inline_fn`` to inlines and ``block_fn`` to blocks."""
    out = []
    for block in tree:
        if isinstance(block, (Heading, Paragraph)):
            block = replace(block, children=map_inlines(block.children, inline_fn))
        elif isinstance(block, Quote):
            block = replace(block, children=map_tree(block.children, inline_fn, block_fn))
        elif isinstance(block, ListBlock):
            block = replace(
                block,
                items=tuple(map_tree(item, inline_fn, block_fn) for item in block.items),
            )
        out.append(block_fn(block))
    return tuple(out)

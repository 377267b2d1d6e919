from __future__ import annotations

import copy
from typing import Optional

from nbformat import NotebookNode

from .utils import _norm_text

HIDE_INPUT_TAGS = {"hide-input", "remove-input", "hide_input", "remove_input"}
HIDE_OUTPUT_TAGS = {"hide-output", "remove-output", "hide_output", "remove_output"}
REMOVE_CELL_TAGS = {"remove-cell", "hide-cell", "remove_cell", "hide_cell"}


def _tags(cell: NotebookNode) -> set:
    md = cell.get("metadata") or {}
    return set(md.get("tags") or [])


def _is_empty(cell: NotebookNode) -> bool:
    src = _norm_text(cell.get("source", "")).strip()
    if cell.get("cell_type") == "code":
        return src == "" and not cell.get("outputs")
    return src == "" and not cell.get("attachments")


def _visible_cell(cell: NotebookNode) -> Optional[NotebookNode]:
    """A copy of ``cell`` with hidden parts removed, or None to drop it."""
    tags = _tags(cell)
    if tags & REMOVE_CELL_TAGS:
        return None

    c = copy.deepcopy(cell)
    md = c.get("metadata") or {}
    jup = md.get("jupyter") if isinstance(md.get("jupyter"), dict) else {}

    source_hidden = bool(jup.get("source_hidden")) or bool(tags & HIDE_INPUT_TAGS)
    if source_hidden:
        if c.get("cell_type") == "markdown":
            return None
        c["source"] = ""

    outputs_hidden = bool(jup.get("outputs_hidden")) or bool(tags & HIDE_OUTPUT_TAGS)
    if outputs_hidden and c.get("cell_type") == "code":
        c["outputs"] = []
        c["execution_count"] = None

    return None if _is_empty(c) else c


def filter_and_apply_visibility(nb: NotebookNode) -> None:
    """Drop removed/empty cells and blank hidden inputs/outputs in place."""
    cells = []
    for cell in nb.cells:
        visible = _visible_cell(cell)
        if visible is not None:
            cells.append(visible)
    nb.cells = cells

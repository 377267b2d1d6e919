from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import yaml

from .assets import mirror_files, read_static_tree
from .config import NAVIGATION_NAME, SiteConfig
from .documents import discover_sources, load_documents
from .errors import ErrorCollector, UnknownLayout
from .indexer import SiteIndex, build_index
from .renderer import Renderer, TemplateSet
from .resolver import resolve_documents


@dataclass
class BuildResult:
    files: Dict[str, bytes]
    index: SiteIndex
    written: int = 0

    @property
    def pages(self) -> int:
        return len(self.index.permalinks)


def navigation_index(index: SiteIndex) -> bytes:
    table = index.permalinks

    def _entries(docs):
        return [
            {"title": d.title, "url": table.url_for(d.doc_id), "date": d.date}
            for d in docs
            if d.doc_id in table
        ]

    data = {
        "collections": {name: _entries(docs) for name, docs in index.collections.items()},
        "categories": {name: _entries(docs) for name, docs in index.categories.items()},
        "permalinks": dict(table.items()),
    }
    return yaml.safe_dump(
        data, sort_keys=False, allow_unicode=True
    ).encode("utf-8")


def run_pipeline(
    config: SiteConfig,
    templates: Optional[TemplateSet] = None,
    log: Callable = print,
) -> BuildResult:
    """Run every phase in memory and return the output files.

    Raises ``BuildFailed`` with all errors of the first failing phase;
    rendering problems are gathered together with dangling references.
    """
    errors = ErrorCollector()

    sources = discover_sources(config)
    docs = load_documents(sources, config, errors)
    errors.raise_if_errors()

    drafts = [d for d in docs if not d.published]
    if drafts and not config.drafts:
        docs = [d for d in docs if d.published]
        for d in drafts:
            log(f"- skipping draft {d.doc_id}")

    index = build_index(docs, config, errors)
    errors.raise_if_errors()

    resolved, files = resolve_documents(index, config, errors, log=log)

    renderer = Renderer(templates or TemplateSet([config.templates_root]), config.site)
    for doc_id, doc in resolved.items():
        try:
            files[index.permalinks.output_path(doc_id)] = renderer.render(doc, index)
        except UnknownLayout as e:
            errors.add(e)
    errors.raise_if_errors()

    files.update(read_static_tree(config.static_root, config.static_dir))
    files[NAVIGATION_NAME] = navigation_index(index)
    return BuildResult(files=files, index=index)


def build_site(
    config: SiteConfig,
    output_dir: pathlib.Path,
    templates: Optional[TemplateSet] = None,
    log: Callable = print,
) -> BuildResult:
    output_dir = pathlib.Path(output_dir).resolve()
    if output_dir == config.source_dir or output_dir in config.source_dir.parents:
        raise ValueError(f"output dir {output_dir} would overwrite the source tree")

    result = run_pipeline(config, templates=templates, log=log)
    result.written = mirror_files(result.files, output_dir, log=log)
    log(
        f"✓ built {result.pages} page(s) into {output_dir}"
        f" ({result.written} file(s) written)"
    )
    return result

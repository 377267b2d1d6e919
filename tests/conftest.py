"""Pytest configuration and shared fixtures."""

import textwrap
from pathlib import Path

import pytest

from tools.publisher.config import SiteConfig
from tools.publisher.errors import ErrorCollector


def write_tree(root: Path, files: dict) -> Path:
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


@pytest.fixture
def make_site(tmp_path):
    """Write a source tree and return its loaded SiteConfig."""

    def _make(files: dict, **overrides) -> SiteConfig:
        (tmp_path / "src").mkdir(exist_ok=True)
        src = write_tree(tmp_path / "src", files)
        overrides.setdefault("workers", 2)
        return SiteConfig.load(src, **overrides)

    return _make


@pytest.fixture
def errors():
    return ErrorCollector()


@pytest.fixture
def quiet():
    """A log callable that keeps messages for inspection."""
    lines = []

    def _log(msg):
        lines.append(msg)

    _log.lines = lines
    return _log


@pytest.fixture
def blog_files():
    return {
        "site.yml": """
            site:
              title: Field Notes
        """,
        "index.md": """
            ---
            layout: home
            title: Home
            ---
            Welcome. Read [about me](about.md).
        """,
        "about.md": """
            ---
            title: About
            ---
            # About

            Writing about observability.
        """,
        "_posts/2023-09-19-tracing-requests.md": """
            ---
            title: Tracing requests
            categories: [observability]
            ---
            ## Setup

            See the [metrics post](2023-10-02-custom-metrics.md#exporting).

            ![dashboard](../assets/img/dashboard.png)
        """,
        "_posts/2023-10-02-custom-metrics.md": """
            ---
            title: Custom metrics
            categories: observability python
            ---
            ## Exporting

            ```python
            # not a heading
            counter.inc()  # [not](a-link.md)
            ```
        """,
        "assets/img/dashboard.png": b"\x89PNG\r\n\x1a\nfake",
    }

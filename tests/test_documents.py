"""Tests for source discovery and document loading."""

from datetime import date

import pytest

from tools.publisher.config import SiteConfig
from tools.publisher.documents import discover_sources, load_document, load_documents
from tools.publisher.errors import MalformedFrontMatter
from tools.publisher.nodes import Heading


class TestDiscoverSources:

    def test_skips_private_static_and_layout_dirs(self, make_site):
        config = make_site({
            "index.md": "x",
            "notes/a.markdown": "x",
            "_posts/2023-01-01-p.md": "x",
            "_drafts/d.md": "x",
            "_layouts/page.md": "x",
            "assets/readme.md": "x",
            ".github/issue.md": "x",
            "img.png": b"x",
        })
        rel = [p.relative_to(config.source_dir).as_posix() for p in discover_sources(config)]
        assert rel == ["_posts/2023-01-01-p.md", "index.md", "notes/a.markdown"]

    def test_exclude_globs(self, make_site):
        config = make_site({
            "site.yml": "exclude: [README.md, 'vendor/*']\n",
            "README.md": "x",
            "vendor/x.md": "x",
            "keep.md": "x",
        })
        rel = [p.relative_to(config.source_dir).as_posix() for p in discover_sources(config)]
        assert rel == ["keep.md"]


class TestLoadDocument:

    def test_post_from_dated_filename(self, make_site):
        config = make_site({"_posts/2023-09-19-gcp-metrics.md": "# Exporting to Cloud Monitoring\n"})
        doc = load_document(config.source_dir / "_posts/2023-09-19-gcp-metrics.md", config)
        assert doc.doc_id == "_posts/2023-09-19-gcp-metrics.md"
        assert doc.layout == "post"
        assert doc.collection == "post"
        assert doc.date == date(2023, 9, 19)
        assert doc.slug == "gcp-metrics"
        assert doc.title == "Exporting to Cloud Monitoring"
        assert isinstance(doc.tree, tuple)
        assert isinstance(doc.tree[0], Heading)

    def test_front_matter_overrides(self, make_site):
        config = make_site({
            "_posts/2023-09-19-x.md": (
                "---\ntitle: Hello\ndate: 2024-01-02\nslug: Other Name\nlayout: note\n"
                "category: ops\n---\nbody\n"
            ),
        })
        doc = load_document(config.source_dir / "_posts/2023-09-19-x.md", config)
        assert (doc.title, doc.date) == ("Hello", date(2024, 1, 2))
        assert (doc.slug, doc.layout) == ("other-name", "note")
        assert doc.categories == ("ops",)

    def test_page_title_falls_back_to_file_name(self, make_site):
        config = make_site({"docs/getting-started/index.md": "no heading\n"})
        doc = load_document(config.source_dir / "docs/getting-started/index.md", config)
        assert doc.layout == "page"
        assert doc.slug == "getting-started"
        assert doc.title == "Getting Started"
        assert doc.directory == "docs/getting-started"

    @pytest.mark.parametrize("value", ["someday", "2023-09-19garbage", "'2023-02-30'"])
    def test_bad_date_is_malformed(self, make_site, value):
        config = make_site({"a.md": f"---\ndate: {value}\n---\n"})
        with pytest.raises(MalformedFrontMatter) as exc:
            load_document(config.source_dir / "a.md", config)
        assert exc.value.location == "date"

    def test_datetime_string_keeps_its_date(self, make_site):
        config = make_site({"a.md": "---\ndate: '2023-09-19T08:30:00'\n---\n"})
        assert load_document(config.source_dir / "a.md", config).date == date(2023, 9, 19)

    def test_undecodable_source_is_malformed(self, make_site):
        config = make_site({"a.md": b"---\ntitle: \xff\n---\n"})
        with pytest.raises(MalformedFrontMatter) as exc:
            load_document(config.source_dir / "a.md", config)
        assert "UTF-8" in exc.value.message

    def test_draft_flag(self, make_site):
        config = make_site({"a.md": "---\npublished: false\n---\n", "b.md": "b"})
        a = load_document(config.source_dir / "a.md", config)
        b = load_document(config.source_dir / "b.md", config)
        assert not a.published
        assert b.published

    def test_documents_are_frozen(self, make_site):
        config = make_site({"a.md": "a"})
        doc = load_document(config.source_dir / "a.md", config)
        with pytest.raises(AttributeError):
            doc.title = "changed"


class TestLoadDocuments:

    def test_results_in_path_order_regardless_of_workers(self, make_site, errors):
        files = {f"p{i:02d}.md": f"# Page {i}\n" for i in range(20)}
        config = make_site(files, workers=8)
        docs = load_documents(discover_sources(config), config, errors)
        assert not errors
        assert [d.doc_id for d in docs] == sorted(files)

    def test_failures_are_collected(self, make_site, errors):
        config = make_site({"a.md": "---\nx: [\n---\n", "b.md": "ok", "c.md": "---\nopen\n"})
        docs = load_documents(discover_sources(config), config, errors)
        assert [d.doc_id for d in docs] == ["b.md"]
        assert sorted(e.path for e in errors.errors) == ["a.md", "c.md"]

    def test_undecodable_file_is_reported_with_the_rest(self, make_site, errors):
        config = make_site({"a.md": b"\xff\xfe junk", "b.md": "---\nopen\n", "c.md": "ok"})
        docs = load_documents(discover_sources(config), config, errors)
        assert [d.doc_id for d in docs] == ["c.md"]
        assert sorted(e.path for e in errors.errors) == ["a.md", "b.md"]


class TestSiteConfig:

    def test_defaults(self, tmp_path):
        config = SiteConfig.load(tmp_path)
        assert config.static_dir == "assets"
        assert config.permalink_pattern("post") == "/{year}/{month}/{day}/{slug}/"
        assert config.permalink_pattern("anything") == "/{path}/"

    def test_file_and_overrides(self, make_site):
        config = make_site({"site.yml": "site:\n  title: T\nworkers: 3\ndrafts: true\n"}, drafts=False)
        assert config.site == {"title": "T"}
        assert config.workers == 2
        assert config.drafts is False

    def test_none_overrides_are_ignored(self, make_site):
        config = make_site({"site.yml": "drafts: true\n"}, drafts=None)
        assert config.drafts is True

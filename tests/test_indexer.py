"""Tests for collection indexing and permalinks."""

from datetime import date

import pytest

from tools.publisher.documents import discover_sources, load_documents
from tools.publisher.errors import DuplicatePermalink, MalformedFrontMatter
from tools.publisher.indexer import build_index, normalize_url, url_to_output_path


def index_for(make_site, errors, files, **overrides):
    config = make_site(files, **overrides)
    docs = load_documents(discover_sources(config), config, errors)
    return build_index(docs, config, errors)


class TestUrls:

    @pytest.mark.parametrize("url,expected", [
        ("/", "index.html"),
        ("/about/", "about/index.html"),
        ("/about", "about/index.html"),
        ("notes//a/", "notes/a/index.html"),
        ("/feed.xml", "feed.xml"),
    ])
    def test_output_paths(self, url, expected):
        assert url_to_output_path(url) == expected

    def test_normalize_url(self):
        assert normalize_url("a//b/") == "/a/b/"


class TestBuildIndex:

    def test_default_permalinks(self, make_site, errors, blog_files):
        index = index_for(make_site, errors, blog_files)
        assert not errors
        table = index.permalinks
        assert table.url_for("index.md") == "/"
        assert table.url_for("about.md") == "/about/"
        assert table.url_for("_posts/2023-09-19-tracing-requests.md") == "/2023/09/19/tracing-requests/"
        assert table.doc_for("/about/") == "about.md"
        assert table.doc_for("/about") == "about.md"

    def test_explicit_permalink_wins(self, make_site, errors):
        index = index_for(make_site, errors, {
            "me.md": "---\npermalink: /about-me.html\n---\nhi\n",
            "_posts/2023-01-02-x.md": "---\npermalink: /{year}/{slug}.html\n---\n",
        })
        assert index.permalinks.url_for("me.md") == "/about-me.html"
        assert index.permalinks.url_for("_posts/2023-01-02-x.md") == "/2023/x.html"

    def test_custom_pattern_from_config(self, make_site, errors):
        index = index_for(make_site, errors, {
            "site.yml": "permalinks:\n  post: /blog/{slug}/\n",
            "_posts/2023-01-02-hello.md": "Hello\n",
        })
        assert index.permalinks.url_for("_posts/2023-01-02-hello.md") == "/blog/hello/"

    def test_undated_post_falls_back_to_path(self, make_site, errors):
        index = index_for(make_site, errors, {"_posts/undated.md": "no date\n"})
        assert index.permalinks.url_for("_posts/undated.md") == "/_posts/undated/"

    def test_posts_sorted_newest_first_with_path_tiebreak(self, make_site, errors):
        index = index_for(make_site, errors, {
            "_posts/2023-01-01-old.md": "a\n",
            "_posts/2023-05-01-b.md": "b\n",
            "_posts/2023-05-01-a.md": "c\n",
            "_posts/undated.md": "d\n",
        })
        order = [d.doc_id for d in index.collections["post"]]
        assert order == [
            "_posts/2023-05-01-a.md",
            "_posts/2023-05-01-b.md",
            "_posts/2023-01-01-old.md",
            "_posts/undated.md",
        ]
        assert index.collections["post"][0].date == date(2023, 5, 1)

    def test_collections_and_categories(self, make_site, errors, blog_files):
        index = index_for(make_site, errors, blog_files)
        assert set(index.collections) == {"home", "page", "post"}
        obs = [d.title for d in index.categories["observability"]]
        assert obs == ["Custom metrics", "Tracing requests"]
        assert [d.title for d in index.categories["python"]] == ["Custom metrics"]

    def test_explicit_collection(self, make_site, errors):
        index = index_for(make_site, errors, {
            "talks/a.md": "---\ncollection: talks\ndate: 2022-02-02\n---\n",
        })
        assert [d.doc_id for d in index.collections["talks"]] == ["talks/a.md"]

    def test_neighbours_link_older_and_newer(self, make_site, errors, blog_files):
        index = index_for(make_site, errors, blog_files)
        older, newer = index.neighbours["_posts/2023-10-02-custom-metrics.md"]
        assert older.doc_id == "_posts/2023-09-19-tracing-requests.md"
        assert newer is None

    def test_duplicate_permalinks_reported_for_every_claimant(self, make_site, errors):
        index = index_for(make_site, errors, {
            "a.md": "---\npermalink: /same/\n---\n",
            "b.md": "---\npermalink: /same\n---\n",
            "c.md": "ok\n",
        })
        dups = errors.of_kind(DuplicatePermalink)
        assert sorted(e.path for e in dups) == ["a.md", "b.md"]
        assert dups[0].others == ["b.md"]
        assert "a.md" not in index.permalinks
        assert "b.md" not in index.permalinks
        assert "c.md" in index.permalinks

    def test_date_placeholder_without_date_is_malformed(self, make_site, errors):
        index_for(make_site, errors, {"x.md": "---\npermalink: /{year}/x/\n---\n"})
        (err,) = errors.of_kind(MalformedFrontMatter)
        assert err.path == "x.md"
        assert err.location == "permalink"

    def test_unknown_placeholder_in_config_is_rejected(self, make_site, errors):
        with pytest.raises(ValueError):
            index_for(make_site, errors, {
                "site.yml": "permalinks:\n  page: /{title}/\n",
                "a.md": "a\n",
            })

"""Tests for the blog view: sorting, pagination and the load state machine."""

import pytest

from folio.errors import CorruptIndexError, NotFoundError
from folio.models import PostIndex, PostMeta
from folio.render import BlogView, ViewState, ViewStatus, format_date, parse_page, sort_posts
from folio.sync import render_post


class MemorySource:
    """In-memory PostSource."""

    def __init__(self, posts=(), bodies=None, index_error=None):
        self.posts = list(posts)
        self.bodies = dict(bodies or {})
        self.index_error = index_error
        self.reads = []

    def read_index(self):
        if self.index_error:
            raise self.index_error
        return PostIndex(list(self.posts))

    def read_body(self, filename):
        self.reads.append(filename)
        if filename not in self.bodies:
            raise NotFoundError(filename)
        return self.bodies[filename]


def make_source(n):
    """n posts, one per day in January/February 2024, stored oldest first."""
    posts, bodies = [], {}
    for i in range(1, n + 1):
        day = f"2024-{1 + (i - 1) // 28:02d}-{1 + (i - 1) % 28:02d}"
        meta = PostMeta(f"{day}-post-{i}.md", f"Post {i}", day)
        posts.append(meta)
        bodies[meta.filename] = render_post(meta.title, meta.date, f"Body of *post {i}*")
    return MemorySource(posts, bodies)


class TestPagination:

    def test_25_posts_page_size_10(self):
        view = BlogView(make_source(25))
        state = view.load(ViewState(page=1, page_size=10))
        assert state.status is ViewStatus.RENDERED
        assert state.total_pages == 3
        # newest first: post 25 .. post 16
        assert [a.title for a in state.articles] == [f"Post {i}" for i in range(25, 15, -1)]

        view.go_to_page(state, 3)
        assert [a.title for a in state.articles] == [f"Post {i}" for i in range(5, 0, -1)]

        numbered = [link for link in view.page_links(state) if link.label.isdigit()]
        assert [link.page for link in numbered] == [1, 2, 3]
        assert [link.page for link in numbered if link.active] == [3]

    def test_prev_next_controls(self):
        view = BlogView(make_source(25))
        state = view.load(ViewState(page=2, page_size=10))
        labels = [link.label for link in view.page_links(state)]
        assert labels == ["← Previous", "1", "2", "3", "Next →"]
        html = view.render_pagination(state)
        assert html.count('class="pagination-btn') == 5
        assert 'class="pagination-btn active" data-page="2"' in html
        assert 'href="?page=3"' in html

    def test_single_page_has_no_controls(self):
        view = BlogView(make_source(10))
        state = view.load(ViewState(page_size=10))
        assert view.page_links(state) == []
        assert view.render_pagination(state) == ""

    def test_page_past_the_end_is_empty(self):
        view = BlogView(make_source(5))
        state = view.load(ViewState(page=4, page_size=10))
        assert state.status is ViewStatus.RENDERED
        assert state.articles == []

    def test_go_to_page_does_not_reread_index(self):
        source = make_source(25)
        view = BlogView(source)
        state = view.load(ViewState(page_size=10))
        source.posts = []
        view.go_to_page(state, 2)
        assert len(state.articles) == 10


class TestLoading:

    def test_index_failure_is_terminal(self):
        view = BlogView(MemorySource(index_error=CorruptIndexError("bad json")))
        state = view.load(ViewState())
        assert state.status is ViewStatus.ERROR
        assert view.render_content(state) == '<div class="error">Failed to load blog posts.</div>'
        assert view.render_pagination(state) == ""

    def test_broken_post_is_skipped(self, caplog):
        source = make_source(3)
        del source.bodies[source.posts[1].filename]
        state = BlogView(source).load(ViewState())
        assert state.status is ViewStatus.RENDERED
        assert [a.title for a in state.articles] == ["Post 3", "Post 1"]
        assert source.posts[1].filename in caplog.text

    def test_frontmatter_overrides_index(self):
        meta = PostMeta("2024-01-01-x.md", "Index title", "2024-01-01")
        source = MemorySource([meta], {meta.filename: render_post("File title", "2024-03-05", "# Hi")})
        article = BlogView(source).load(ViewState()).articles[0]
        assert article.title == "File title"
        assert article.date == "March 5, 2024"
        assert "<h1>Hi</h1>" in article.html
        assert article.anchor == "2024-01-01-x"

    def test_index_metadata_used_without_frontmatter(self):
        meta = PostMeta("2024-01-01-x.md", "Index title", "2024-01-01")
        source = MemorySource([meta], {meta.filename: "No front matter here"})
        article = BlogView(source).load(ViewState()).articles[0]
        assert article.title == "Index title"
        assert article.date == "January 1, 2024"

    def test_unreadable_frontmatter_falls_back_to_index(self, caplog):
        meta = PostMeta("2024-01-01-x.md", 'a "b"', "2024-01-01")
        legacy = '---\ntitle: "a "b""\ndate: "2024-01-01"\n---\n\nOld *post*'
        article = BlogView(MemorySource([meta], {meta.filename: legacy})).load(ViewState()).articles[0]
        assert article.title == 'a "b"'
        assert article.date == "January 1, 2024"
        assert article.html == "<p>Old <em>post</em></p>"
        assert "unreadable front matter" in caplog.text

    def test_render_escapes_title(self):
        meta = PostMeta("2024-01-01-x.md", "<script>", "2024-01-01")
        source = MemorySource([meta], {meta.filename: "body"})
        view = BlogView(source)
        html = view.render_content(view.load(ViewState()))
        assert "&lt;script&gt;" in html
        assert "<script>" not in html

    def test_document(self):
        view = BlogView(make_source(12))
        doc = view.render_document(view.load(ViewState(page_size=10)), "My Blog")
        assert doc.startswith("<!DOCTYPE html>")
        assert '<main id="blog-content">' in doc
        assert '<nav id="pagination" class="pagination">' in doc
        assert "<title>My Blog</title>" in doc


class TestHelpers:

    def test_sort_posts(self):
        posts = [
            PostMeta("a.md", "a", "2023-05-01"),
            PostMeta("b.md", "b", "garbage"),
            PostMeta("c.md", "c", "2024-01-01"),
            PostMeta("d.md", "d", "2023-05-01"),
        ]
        assert [p.filename for p in sort_posts(posts)] == ["c.md", "a.md", "d.md", "b.md"]

    def test_format_date(self):
        assert format_date("2024-01-15") == "January 15, 2024"
        assert format_date("not a date") == "not a date"

    @pytest.mark.parametrize("raw,page", [("3", 3), ("", 1), (None, 1), ("0", 1), ("-2", 1), ("abc", 1)])
    def test_parse_page(self, raw, page):
        assert parse_page(raw) == page

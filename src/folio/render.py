"""Blog view: sorted, paginated post pages rendered to HTML.

State flow for one page view:

    IDLE -> LOADING_INDEX -> LOADING_PAGE -> RENDERED
                  \\               \\
                   `-> ERROR        (a broken post is skipped, not fatal)

ViewState is per request/session; BlogView holds no page state of its own.
"""

from __future__ import annotations

import enum
import html as _html
import logging
import math
from dataclasses import dataclass, field
from datetime import date as _date
from typing import TYPE_CHECKING, Protocol

import markdown

from folio.frontmatter import parse_frontmatter

if TYPE_CHECKING:
    from collections.abc import Callable

    from folio.models import PostIndex, PostMeta

logger = logging.getLogger("folio.render")

_MD_EXTENSIONS = ["fenced_code", "tables"]
_INDEX_ERROR = "Failed to load blog posts."


class PostSource(Protocol):
    """Where the view reads the index and raw post files from."""

    def read_index(self) -> PostIndex: ...

    def read_body(self, filename: str) -> str: ...


class ViewStatus(enum.Enum):
    IDLE = "idle"
    LOADING_INDEX = "loading-index"
    LOADING_PAGE = "loading-page"
    RENDERED = "rendered"
    ERROR = "error"


@dataclass
class Article:
    """One rendered post on the current page."""

    filename: str
    title: str
    date: str
    html: str

    @property
    def anchor(self) -> str:
        return self.filename.removesuffix(".md")


@dataclass
class PageLink:
    label: str
    page: int
    active: bool = False


@dataclass
class ViewState:
    page: int = 1
    page_size: int = 10
    status: ViewStatus = ViewStatus.IDLE
    posts: list[PostMeta] = field(default_factory=list)   # newest first
    articles: list[Article] = field(default_factory=list)
    error: str | None = None

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.posts) / self.page_size)

    def visible(self) -> list[PostMeta]:
        start = (self.page - 1) * self.page_size
        return self.posts[start:start + self.page_size]


def parse_page(value: str | None) -> int:
    """Page number from a ?page= value; anything invalid or < 1 is page 1."""
    try:
        page = int(value or "")
    except ValueError:
        return 1
    return page if page >= 1 else 1


def _sort_key(meta: PostMeta) -> _date:
    try:
        return _date.fromisoformat(meta.date)
    except ValueError:
        return _date.min


def sort_posts(posts: list[PostMeta]) -> list[PostMeta]:
    """Newest first. Unparseable dates sort last; ties keep index order."""
    return sorted(posts, key=_sort_key, reverse=True)


def format_date(value: str) -> str:
    """'2024-01-15' -> 'January 15, 2024'. Unparseable input is returned as-is."""
    try:
        d = _date.fromisoformat(value)
    except ValueError:
        return value
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def _page_href(page: int) -> str:
    return f"?page={page}"


class BlogView:
    """Loads and renders pages of posts from a PostSource."""

    def __init__(self, source: PostSource, *, page_href: Callable[[int], str] = _page_href) -> None:
        self.source = source
        self.page_href = page_href

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, state: ViewState) -> ViewState:
        """Fetch and sort the index, then load the current page."""
        state.status = ViewStatus.LOADING_INDEX
        try:
            index = self.source.read_index()
        except Exception:
            logger.exception("failed to load post index")
            state.status = ViewStatus.ERROR
            state.error = _INDEX_ERROR
            state.posts = []
            state.articles = []
            return state
        state.posts = sort_posts(index.posts)
        return self.load_page(state)

    def load_page(self, state: ViewState) -> ViewState:
        """Render every visible post. A post that fails to load is skipped."""
        state.status = ViewStatus.LOADING_PAGE
        articles: list[Article] = []
        for meta in state.visible():
            try:
                articles.append(self.render_post(meta))
            except Exception as exc:  # noqa: BLE001
                logger.warning("skipping post %s: %s", meta.filename, exc)
        state.articles = articles
        state.status = ViewStatus.RENDERED
        return state

    def go_to_page(self, state: ViewState, page: int) -> ViewState:
        """Switch pages without re-reading the index."""
        state.page = page
        return self.load_page(state)

    def render_post(self, meta: PostMeta) -> Article:
        text = self.source.read_body(meta.filename)
        front, body = parse_frontmatter(text)
        return Article(
            filename=meta.filename,
            title=front.get("title") or meta.title,
            date=format_date(front.get("date") or meta.date),
            html=markdown.markdown(body, extensions=_MD_EXTENSIONS),
        )

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def page_links(self, state: ViewState) -> list[PageLink]:
        """Previous / numbered / Next controls. Empty for a single page."""
        total = state.total_pages
        if total <= 1:
            return []
        links: list[PageLink] = []
        if state.page > 1:
            links.append(PageLink("← Previous", state.page - 1))
        links.extend(PageLink(str(i), i, active=i == state.page) for i in range(1, total + 1))
        if state.page < total:
            links.append(PageLink("Next →", state.page + 1))
        return links

    def render_content(self, state: ViewState) -> str:
        if state.status is ViewStatus.ERROR:
            return f'<div class="error">{_html.escape(state.error or _INDEX_ERROR)}</div>'
        return "".join(
            f'<article class="blog-post" id="{_html.escape(a.anchor)}">'
            f'<h2 class="post-title"><a href="#{_html.escape(a.anchor)}">{_html.escape(a.title)}</a></h2>'
            f'<div class="post-date">{_html.escape(a.date)}</div>'
            f'<div class="post-content">{a.html}</div>'
            f'</article>'
            for a in state.articles
        )

    def render_pagination(self, state: ViewState) -> str:
        if state.status is ViewStatus.ERROR:
            return ""
        return "".join(
            f'<a href="{_html.escape(self.page_href(link.page))}" '
            f'class="pagination-btn{" active" if link.active else ""}" '
            f'data-page="{link.page}">{_html.escape(link.label)}</a>'
            for link in self.page_links(state)
        )

    def render_document(self, state: ViewState, title: str) -> str:
        t = _html.escape(title)
        return (
            f'<!DOCTYPE html>\n<html lang="en">\n<head>'
            f'<meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1">'
            f'<title>{t}</title>'
            f'<style>{_CSS}</style>'
            f'</head>\n<body>'
            f'<header><h1><a href="?page=1">{t}</a></h1></header>'
            f'<main id="blog-content">{self.render_content(state)}</main>'
            f'<nav id="pagination" class="pagination">{self.render_pagination(state)}</nav>'
            f'<script>{_PAGINATION_JS}</script>'
            f'</body></html>'
        )


_CSS = """
body{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",sans-serif;max-width:760px;margin:0 auto;padding:24px;color:#222;line-height:1.6}
header h1 a{color:inherit;text-decoration:none}
.blog-post{border-bottom:1px solid #eee;padding:16px 0 24px}
.post-title a{color:#111;text-decoration:none}
.post-date{color:#777;font-size:14px;margin-bottom:12px}
.post-content img{max-width:100%}
.post-content pre{background:#f6f8fa;padding:12px;overflow-x:auto}
.pagination{display:flex;gap:6px;justify-content:center;margin:24px 0}
.pagination-btn{padding:6px 12px;border:1px solid #ddd;border-radius:4px;color:#333;text-decoration:none}
.pagination-btn.active{background:#333;color:#fff;border-color:#333}
.error{background:#fdecea;color:#b71c1c;padding:12px;border-radius:4px}
"""

# Swap pages in place: fetch the partial JSON, scroll up, push ?page=N.
_PAGINATION_JS = """
(function(){
  var nav = document.getElementById('pagination');
  async function go(page, push){
    try {
      var res = await fetch('?page=' + page + '&partial=1');
      if (!res.ok) throw new Error(res.status);
      var data = await res.json();
      document.getElementById('blog-content').innerHTML = data.content;
      nav.innerHTML = data.pagination;
      window.scrollTo({top: 0, behavior: 'smooth'});
      if (push) {
        var url = new URL(window.location);
        url.searchParams.set('page', data.page);
        window.history.pushState({page: data.page}, '', url);
      }
    } catch (e) {
      console.error('Error loading page', page, e);
      window.location.search = '?page=' + page;
    }
  }
  nav.addEventListener('click', function(e){
    var btn = e.target.closest('.pagination-btn');
    if (!btn) return;
    e.preventDefault();
    go(parseInt(btn.dataset.page, 10), true);
  });
  window.addEventListener('popstate', function(){
    var p = parseInt(new URLSearchParams(window.location.search).get('page'), 10) || 1;
    go(p, false);
  });
})();
"""

"""Keep post files and posts.json consistent across create / update / delete.

Each mutation runs inside PostStore.with_index(), so the Markdown write and
the index rewrite happen in one critical section. If the post file is
written but the index write then fails, the two are left out of step; there
is no rollback.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as _date
from typing import TYPE_CHECKING

from folio.errors import NotFoundError, ValidationError
from folio.frontmatter import post_filename, serialize_frontmatter
from folio.models import PostIndex, PostMeta, utc_today

if TYPE_CHECKING:
    from folio.store import PostStore

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(value: str) -> str:
    """Return value if it is a real YYYY-MM-DD date, else raise ValidationError."""
    if not _DATE_RE.match(value):
        msg = f"Invalid date {value!r}: expected YYYY-MM-DD"
        raise ValidationError(msg)
    try:
        _date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date {value!r}: {exc}"
        raise ValidationError(msg) from exc
    return value


def render_post(title: str, post_date: str, content: str) -> str:
    return serialize_frontmatter({"title": title, "date": post_date}, content)


@dataclass
class Deleted:
    """Outcome of a delete: the file name and the label used for notifications."""

    filename: str
    label: str


class IndexSynchronizer:
    """Applies post mutations to both the Markdown file and the index."""

    def __init__(self, store: PostStore) -> None:
        self.store = store

    def create(self, title: str, content: str, post_date: str | None = None) -> PostMeta:
        """Write a new post and put it first in the index.

        Same title on the same date maps to the same filename; the later
        write wins and the index gets a second entry for it.
        """
        post_date = validate_date(post_date) if post_date else utc_today()
        meta = PostMeta(filename=post_filename(post_date, title), title=title, date=post_date)
        text = render_post(title, post_date, content)

        def _apply(index: PostIndex) -> PostMeta:
            self.store.write_post(meta.filename, text)
            index.prepend(meta)
            return meta

        return self.store.with_index(_apply)

    def update(self, filename: str, title: str, content: str, post_date: str | None = None) -> PostMeta:
        """Overwrite an indexed post in place; the filename never changes.

        Raises NotFoundError, without touching the file, when filename is not
        in the index. A missing post_date keeps the indexed date.
        """
        self.store.post_path(filename)
        if post_date:
            validate_date(post_date)

        def _apply(index: PostIndex) -> PostMeta:
            current = index.find(filename)
            if current is None:
                msg = f"Post not found: {filename}"
                raise NotFoundError(msg)
            meta = PostMeta(filename=filename, title=title, date=post_date or current.date)
            self.store.write_post(filename, render_post(meta.title, meta.date, content))
            index.replace(meta)
            return meta

        return self.store.with_index(_apply)

    def delete(self, filename: str) -> Deleted:
        """Remove the post file and every index entry pointing at it."""

        def _apply(index: PostIndex) -> Deleted:
            current = index.find(filename)
            self.store.delete_post(filename)
            index.remove(filename)
            return Deleted(filename=filename, label=current.title if current else filename)

        return self.store.with_index(_apply)

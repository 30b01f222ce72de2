"""Data models for the post index."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from folio.errors import CorruptIndexError


def utc_today() -> str:
    """Current UTC date as YYYY-MM-DD."""
    return datetime.now(UTC).date().isoformat()


@dataclass
class PostMeta:
    """One entry of posts.json. filename is the primary key."""

    filename: str
    title: str
    date: str                          # YYYY-MM-DD, no time component

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PostMeta:
        return cls(
            filename=str(d["filename"]),
            title=str(d.get("title", "")),
            date=str(d.get("date", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "title": self.title, "date": self.date}


@dataclass
class PostIndex:
    """Ordered post list. Storage order is insertion order, not date order."""

    posts: list[PostMeta] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Any) -> PostIndex:
        if not isinstance(d, dict) or not isinstance(d.get("posts", []), list):
            msg = "posts.json must be an object with a 'posts' list"
            raise CorruptIndexError(msg)
        try:
            return cls(posts=[PostMeta.from_dict(p) for p in d.get("posts", [])])
        except (KeyError, TypeError, AttributeError) as exc:
            msg = f"posts.json has a malformed entry: {exc}"
            raise CorruptIndexError(msg) from exc

    def to_dict(self) -> dict[str, Any]:
        return {"posts": [p.to_dict() for p in self.posts]}

    def find(self, filename: str) -> PostMeta | None:
        for p in self.posts:
            if p.filename == filename:
                return p
        return None

    def prepend(self, meta: PostMeta) -> None:
        self.posts.insert(0, meta)

    def replace(self, meta: PostMeta) -> bool:
        """Swap the entry with meta.filename in place. False if absent."""
        for i, p in enumerate(self.posts):
            if p.filename == meta.filename:
                self.posts[i] = meta
                return True
        return False

    def remove(self, filename: str) -> int:
        """Drop every entry with this filename. Returns how many were removed."""
        before = len(self.posts)
        self.posts = [p for p in self.posts if p.filename != filename]
        return before - len(self.posts)

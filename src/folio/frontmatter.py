"""Slugs and the front-matter block at the top of each post.

A post file looks like::

    ---
    title: "Hello World!"
    date: "2024-01-15"
    ---

    Body in Markdown...

Values are written as JSON strings, which YAML reads back as double-quoted
scalars, so quotes and line breaks in a title survive the round trip.
"""

from __future__ import annotations

import json
import logging
import re

import frontmatter
import yaml

logger = logging.getLogger("folio.frontmatter")

_DELIM = "---"

_WS_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w\-]+", re.ASCII)
_MULTI_HYPHEN_RE = re.compile(r"-{2,}")
_BLOCK_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)


def slugify(text: str) -> str:
    """Filename-safe slug: lowercase ASCII word chars and single inner hyphens.

    May be empty (e.g. for "" or "!!!").
    """
    text = str(text).lower()
    text = _WS_RE.sub("-", text)
    text = _NON_WORD_RE.sub("", text)
    text = _MULTI_HYPHEN_RE.sub("-", text)
    return text.strip("-")


def post_filename(date: str, title: str) -> str:
    return f"{date}-{slugify(title)}.md"


def serialize_frontmatter(meta: dict[str, str], body: str) -> str:
    """Render meta as ``key: "value"`` lines, a blank line, then body."""
    lines = [_DELIM]
    lines.extend(f"{key}: {json.dumps(str(value), ensure_ascii=False)}" for key, value in meta.items())
    lines.append(_DELIM)
    return "\n".join(lines) + "\n\n" + body


def parse_frontmatter(text: str) -> tuple[dict[str, str], str]:
    """Split a post into (metadata, body).

    Text without a complete leading ``---`` block comes back unchanged as the
    body with empty metadata. A block that is not valid YAML (older posts
    wrote titles with unescaped quotes) yields empty metadata and the text
    after the block. The body keeps its whitespace; only the blank separator
    line is dropped.
    """
    match = _BLOCK_RE.match(text)
    if match is None:
        return {}, text

    body = text[match.end():]
    for sep in ("\r\n", "\n"):
        if body.startswith(sep):
            body = body[len(sep):]
            break

    try:
        post = frontmatter.loads(text)
    except yaml.YAMLError as exc:
        logger.warning("unreadable front matter, ignoring it: %s", exc)
        return {}, body
    meta = {str(key): "" if value is None else str(value) for key, value in post.metadata.items()}
    return meta, body

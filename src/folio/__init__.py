"""Markdown blog: post files + a JSON index, edited through a localhost admin service.

Layout:
    folio.toml
    posts/
        posts.json            # {"posts": [{filename, title, date}, ...]}, newest inserted first
        <date>-<slug>.md      # front matter (title, date) + Markdown body
    images/                   # uploads: <epoch ms>-<original name>

Every create / update / delete rewrites posts.json under a single-writer lock
and then commits posts/ with git (best effort: failures are logged, never raised).
"""

from folio.api import AdminAPI
from folio.config import FolioConfig, init_config, load_config
from folio.models import PostIndex, PostMeta
from folio.store import PostStore

__all__ = ["AdminAPI", "FolioConfig", "PostIndex", "PostMeta", "PostStore", "init_config", "load_config"]

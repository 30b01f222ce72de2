"""AdminAPI: the operations behind the admin HTTP service and the CLI.

Mutations update storage first, then hand off to the Notifier. The result
never depends on whether git succeeded.
"""

from __future__ import annotations

import ipaddress
import logging
import time
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING

from folio import vcs
from folio.errors import ForbiddenError, UploadError, WriteError
from folio.store import PostStore
from folio.sync import IndexSynchronizer

if TYPE_CHECKING:
    from folio.config import FolioConfig
    from folio.models import PostIndex
    from folio.vcs import Notifier

logger = logging.getLogger("folio.api")

_LOOPBACK_NAMES = {"localhost"}


def is_loopback(host: str | None) -> bool:
    """True for 'localhost' and loopback IP literals (127.0.0.0/8, ::1)."""
    if not host:
        return False
    host = host.strip().strip("[]").lower()
    if host in _LOOPBACK_NAMES:
        return True
    try:
        return ipaddress.ip_address(host.split("%", 1)[0]).is_loopback
    except ValueError:
        return False


def authorize(*hosts: str | None) -> None:
    """Raise ForbiddenError unless every given host is loopback."""
    for host in hosts:
        if not is_loopback(host):
            msg = "Access denied. Admin panel is only accessible from localhost."
            raise ForbiddenError(msg)


def upload_name(original_name: str, now_ms: int | None = None) -> str:
    """``<epoch ms>-<basename>``, with any client-supplied directories dropped."""
    base = PurePosixPath(PureWindowsPath(original_name).name).name or "upload"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}-{base}"


class AdminAPI:
    """List, read, create, update and delete posts; accept image uploads."""

    def __init__(self, store: PostStore, notifier: Notifier, images_dir: Path) -> None:
        self.store = store
        self.sync = IndexSynchronizer(store)
        self.notifier = notifier
        self.images_dir = Path(images_dir)

    @classmethod
    def from_config(cls, cfg: FolioConfig) -> AdminAPI:
        return cls(PostStore(cfg.posts_dir), vcs.Notifier.from_config(cfg), cfg.images_dir)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_posts(self) -> PostIndex:
        return self.store.read_index()

    def get_post_body(self, filename: str) -> str:
        return self.store.read_body(filename)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_post(self, title: str, content: str, date: str | None = None) -> str:
        meta = self.sync.create(title, content, date)
        logger.info("created %s", meta.filename)
        self.notifier.notify(vcs.ADD_POST, title)
        return meta.filename

    def update_post(self, filename: str, title: str, content: str, date: str | None = None) -> None:
        self.sync.update(filename, title, content, date)
        logger.info("updated %s", filename)
        self.notifier.notify(vcs.UPDATE_POST, title)

    def delete_post(self, filename: str) -> None:
        deleted = self.sync.delete(filename)
        logger.info("deleted %s", filename)
        self.notifier.notify(vcs.DELETE_POST, deleted.label)

    def upload_image(self, original_name: str | None, data: bytes | None) -> str:
        """Store an uploaded image under images/ and return its URL path."""
        if not original_name or data is None:
            msg = "No file uploaded"
            raise UploadError(msg)
        name = upload_name(original_name)
        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            (self.images_dir / name).write_bytes(data)
        except OSError as exc:
            msg = f"Failed to save upload {name}: {exc}"
            raise WriteError(msg) from exc
        logger.info("uploaded %s (%d bytes)", name, len(data))
        return f"/{self.images_dir.name}/{name}"

"""Post files and the posts.json index.

PostStore is the public API:
    store = PostStore("/path/to/posts")
    index = store.read_index()
    body = store.read_body("2024-01-15-hello-world.md")
    store.with_index(lambda index: index.prepend(meta))

posts.json is read and rewritten whole on every mutation. with_index()
serialises those read-modify-write cycles: an in-process lock for the
threaded admin server plus flock(LOCK_EX) on posts.json.lock for other
processes. Writes go to a temp file and are renamed into place.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from folio.errors import CorruptIndexError, NotFoundError, WriteError
from folio.models import PostIndex

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("folio.store")

T = TypeVar("T")

_INDEX_FILENAME = "posts.json"

# One lock per index file, shared by every PostStore pointing at it.
_process_locks: dict[Path, threading.Lock] = {}
_process_locks_guard = threading.Lock()


def _process_lock(path: Path) -> threading.Lock:
    with _process_locks_guard:
        return _process_locks.setdefault(path, threading.Lock())


class PostStore:
    """Directory of Markdown posts plus their JSON index."""

    def __init__(self, posts_dir: Path | str) -> None:
        self.posts_dir = Path(posts_dir).resolve()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def index_path(self) -> Path:
        return self.posts_dir / _INDEX_FILENAME

    @property
    def _lock_path(self) -> Path:
        return self.posts_dir / (_INDEX_FILENAME + ".lock")

    def post_path(self, filename: str) -> Path:
        """Resolve a post filename, rejecting anything but a bare *.md name."""
        if (
            not filename
            or filename != Path(filename).name
            or "\\" in filename
            or filename.startswith(".")
            or not filename.endswith(".md")
        ):
            msg = f"Post not found: {filename}"
            raise NotFoundError(msg)
        return self.posts_dir / filename

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_index(self) -> PostIndex:
        """Load posts.json. A missing file is an empty index."""
        try:
            raw = self.index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return PostIndex()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"Failed to read posts: {self.index_path} is not valid JSON ({exc})"
            raise CorruptIndexError(msg) from exc
        return PostIndex.from_dict(data)

    def read_body(self, filename: str) -> str:
        """Return the raw post file (front matter included)."""
        path = self.post_path(filename)
        try:
            return path.read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError) as exc:
            msg = f"Post not found: {filename}"
            raise NotFoundError(msg) from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write_post(self, filename: str, text: str) -> Path:
        """Create or overwrite a post file."""
        path = self.post_path(filename)
        try:
            self.posts_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            msg = f"Failed to write {filename}: {exc}"
            raise WriteError(msg) from exc
        return path

    def delete_post(self, filename: str) -> None:
        path = self.post_path(filename)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            msg = f"Post not found: {filename}"
            raise NotFoundError(msg) from exc
        except OSError as exc:
            msg = f"Failed to delete {filename}: {exc}"
            raise WriteError(msg) from exc

    def write_index(self, index: PostIndex) -> None:
        """Atomically replace posts.json. Callers should hold with_index()."""
        tmp = self.index_path.with_suffix(".json.tmp")
        try:
            self.posts_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(index.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.index_path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            msg = f"Failed to write {self.index_path.name}: {exc}"
            raise WriteError(msg) from exc

    # ------------------------------------------------------------------
    # Serialised read-modify-write
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the single-writer lock for this index."""
        lock = _process_lock(self.index_path)
        with lock:
            try:
                self.posts_dir.mkdir(parents=True, exist_ok=True)
                lock_file = self._lock_path.open("a")
            except OSError as exc:
                msg = f"Failed to lock {self.index_path.name}: {exc}"
                raise WriteError(msg) from exc
            with lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    def with_index(self, mutator: Callable[[PostIndex], T]) -> T:
        """Run mutator on the current index under the lock, then persist it.

        The index is written back only if mutator returns without raising.
        """
        with self.locked():
            index = self.read_index()
            result = mutator(index)
            self.write_index(index)
            logger.debug("index written: %d posts", len(index.posts))
            return result

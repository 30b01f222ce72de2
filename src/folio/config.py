"""FolioConfig: project-local config for a folio blog.

Default layout (all relative to the blog root):

    folio.toml            # project config (git-tracked)
    posts/
        posts.json        # post index: {"posts": [{filename, title, date}, ...]}
        <date>-<slug>.md  # front matter + Markdown body
    images/               # uploads, created on first upload

folio.toml example:

    [blog]
    name = "my-blog"
    # posts_dir = "posts"     # default
    # images_dir = "images"   # default

    [server]
    host = "127.0.0.1"
    port = 3001
    cors_origins = ["http://localhost:8000"]

    [site]
    host = "127.0.0.1"
    port = 8000
    page_size = 10

    [git]
    enabled = true
    push = true
    timeout = 60
    footer = "Published with folio"
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "folio.toml"
_DEFAULT_POSTS_DIR = "posts"
_DEFAULT_IMAGES_DIR = "images"
_INDEX_FILENAME = "posts.json"
_GITIGNORE_CONTENT = "posts.json.lock\n*.tmp\n"

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    "http://localhost:3000",
]


@dataclass
class ServerConfig:
    """Admin service. Only ever bound to a loopback address."""
    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = field(default_factory=lambda: list(_DEFAULT_CORS_ORIGINS))


@dataclass
class SiteConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    page_size: int = 10


@dataclass
class GitConfig:
    enabled: bool = True
    push: bool = True
    timeout: float = 60.0           # per git step; 0 = wait forever
    footer: str = "Published with folio"


@dataclass
class FolioConfig:
    """Resolved configuration for a blog root."""

    root: Path                      # directory that contains folio.toml
    name: str = ""
    posts_dir: Path = field(default_factory=Path)
    images_dir: Path = field(default_factory=Path)
    server: ServerConfig = field(default_factory=ServerConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    git: GitConfig = field(default_factory=GitConfig)

    @property
    def index_path(self) -> Path:
        return self.posts_dir / _INDEX_FILENAME

    def ensure_dirs(self) -> None:
        """Create posts_dir and an empty posts.json if they don't exist."""
        self.posts_dir.mkdir(parents=True, exist_ok=True)
        if not self.index_path.exists():
            self.index_path.write_text(json.dumps({"posts": []}, indent=2), encoding="utf-8")
        self._write_gitignore()

    def _write_gitignore(self) -> None:
        """Write posts/.gitignore so the index lock and temp files stay out of git."""
        gitignore = self.posts_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(_GITIGNORE_CONTENT)


def load_config(root: Path | str | None = None) -> FolioConfig:
    """Load folio.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    blog_section = raw.get("blog", {})
    srv_section = raw.get("server", {})
    site_section = raw.get("site", {})
    git_section = raw.get("git", {})

    return FolioConfig(
        root=root_path,
        name=blog_section.get("name", root_path.name),
        posts_dir=root_path / blog_section.get("posts_dir", _DEFAULT_POSTS_DIR),
        images_dir=root_path / blog_section.get("images_dir", _DEFAULT_IMAGES_DIR),
        server=ServerConfig(
            host=str(srv_section.get("host", "127.0.0.1")),
            port=int(srv_section.get("port", 3001)),
            cors_origins=list(srv_section.get("cors_origins", _DEFAULT_CORS_ORIGINS)),
        ),
        site=SiteConfig(
            host=str(site_section.get("host", "127.0.0.1")),
            port=int(site_section.get("port", 8000)),
            page_size=max(1, int(site_section.get("page_size", 10))),
        ),
        git=GitConfig(
            enabled=bool(git_section.get("enabled", True)),
            push=bool(git_section.get("push", True)),
            timeout=float(git_section.get("timeout", 60.0)),
            footer=str(git_section.get("footer", "Published with folio")),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for folio.toml."""
    start = start.resolve()
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default folio.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"folio.toml already exists at {config_path}"
        raise FileExistsError(msg)

    blog_name = name or root.name
    content = f"""\
[blog]
name = "{blog_name}"
# posts_dir = "posts"     # default: Markdown posts + posts.json
# images_dir = "images"   # default: created on first upload

# [server]                # admin service (loopback only)
# host = "127.0.0.1"
# port = 3001
# cors_origins = ["http://localhost:8000", "http://127.0.0.1:8000", "http://localhost:3000"]

# [site]                  # public site
# host = "127.0.0.1"
# port = 8000
# page_size = 10

# [git]
# enabled = true          # commit posts/ after every change
# push = true             # also try `git push`
# timeout = 60            # seconds per git step (0 = no timeout)
# footer = "Published with folio"
"""
    config_path.write_text(content)
    return config_path

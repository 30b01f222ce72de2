"""
Pytest configuration and shared fixtures
"""

import json
import threading
import urllib.error
import urllib.request

import pytest

from folio.api import AdminAPI
from folio.config import load_config
from folio.errors import NotifyFailure
from folio.store import PostStore
from folio.vcs import Notifier


class RecordingVCS:
    """Version-control double: records each step, optionally failing some."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []

    def _step(self, name, arg):
        self.calls.append((name, arg))
        if name in self.fail:
            raise NotifyFailure(f"{name} exploded")

    def stage(self, paths):
        self._step("stage", list(paths))

    def commit(self, message):
        self._step("commit", message)

    def push(self):
        self._step("push", None)

    @property
    def messages(self):
        return [arg for name, arg in self.calls if name == "commit"]


@pytest.fixture
def blog_root(tmp_path):
    """A blog root with git disabled and an empty index."""
    (tmp_path / "folio.toml").write_text(
        '[blog]\nname = "Test Blog"\n\n[git]\nenabled = false\n'
    )
    cfg = load_config(tmp_path)
    cfg.ensure_dirs()
    return tmp_path


@pytest.fixture
def cfg(blog_root):
    return load_config(blog_root)


@pytest.fixture
def store(cfg):
    return PostStore(cfg.posts_dir)


@pytest.fixture
def vcs():
    return RecordingVCS()


@pytest.fixture
def api(cfg, store, vcs):
    notifier = Notifier(vcs, [cfg.posts_dir], push=True, footer="Published with folio")
    return AdminAPI(store, notifier, cfg.images_dir)


def _run_server(server):
    from folio.web import base_url

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return base_url(server), thread


@pytest.fixture
def admin_url(cfg, api):
    """Base URL of a live admin server on an ephemeral port."""
    from folio.web import make_server

    server = make_server(cfg, "127.0.0.1", 0, api=api)
    url, thread = _run_server(server)
    yield url
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def site_url(cfg):
    from folio.site import make_site_server

    server = make_site_server(cfg, "127.0.0.1", 0)
    url, thread = _run_server(server)
    yield url
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


def request(method, url, payload=None, *, data=None, headers=None):
    """Send a request; return (status, headers, body bytes) without raising on 4xx/5xx."""
    headers = dict(headers or {})
    if payload is not None:
        data = json.dumps(payload).encode()
        headers.setdefault("Content-Type", "application/json")
    req = urllib.request.Request(url, data=data, method=method, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=10) as res:
            return res.status, res.headers, res.read()
    except urllib.error.HTTPError as exc:
        with exc:
            return exc.code, exc.headers, exc.read()


def request_json(method, url, payload=None, **kwargs):
    status, _headers, body = request(method, url, payload, **kwargs)
    return status, json.loads(body)

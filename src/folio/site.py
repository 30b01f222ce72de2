"""Public blog site: paginated post pages plus the files they reference.

Routes:
    GET /?page=N             → full page N (newest posts first)
    GET /?page=N&partial=1   → {"page", "content", "pagination"} for in-place paging
    GET /posts/<file>        → raw post files and posts.json
    GET /images/<file>       → uploaded images
"""

from __future__ import annotations

import json
import logging
import mimetypes
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import TYPE_CHECKING

from folio.errors import NotFoundError
from folio.render import BlogView, ViewState, parse_page
from folio.store import PostStore
from folio.web import base_url, bind_server, resolve_under

if TYPE_CHECKING:
    from pathlib import Path

    from folio.config import FolioConfig

logger = logging.getLogger("folio.site")


def render_site_page(cfg: FolioConfig, view: BlogView, page: int) -> tuple[ViewState, str]:
    """Load page `page` into a fresh ViewState and render the whole document."""
    state = view.load(ViewState(page=page, page_size=cfg.site.page_size))
    return state, view.render_document(state, cfg.name)


class _SiteHandler(BaseHTTPRequestHandler):
    cfg: FolioConfig  # injected via make_site_handler()
    view: BlogView

    def do_GET(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path
        qs = urllib.parse.parse_qs(parsed.query)
        if path in ("/", "", "/index.html"):
            page = parse_page(qs.get("page", [""])[0])
            if qs.get("partial", [""])[0] == "1":
                self._partial(page)
            else:
                _state, body = render_site_page(self.cfg, self.view, page)
                self._send(body.encode(), "text/html; charset=utf-8")
            return
        for prefix, base in (("/" + self.cfg.posts_dir.name + "/", self.cfg.posts_dir),
                             ("/" + self.cfg.images_dir.name + "/", self.cfg.images_dir)):
            if path.startswith(prefix):
                self._file(base, path[len(prefix):])
                return
        self._send(b"Not found", "text/plain; charset=utf-8", 404)

    def _partial(self, page: int) -> None:
        state = self.view.load(ViewState(page=page, page_size=self.cfg.site.page_size))
        payload = {
            "page": state.page,
            "status": state.status.value,
            "content": self.view.render_content(state),
            "pagination": self.view.render_pagination(state),
        }
        self._send(json.dumps(payload).encode(), "application/json; charset=utf-8")

    def _file(self, base: Path, rel: str) -> None:
        try:
            target = resolve_under(base, rel)
        except NotFoundError:
            self._send(b"Not found", "text/plain; charset=utf-8", 404)
            return
        ctype = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        if target.suffix == ".md":
            ctype = "text/markdown; charset=utf-8"
        self._send(target.read_bytes(), ctype)

    def _send(self, body: bytes, ctype: str, status: int = 200) -> None:
        self.send_response(status)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


def make_site_handler(cfg: FolioConfig) -> type[_SiteHandler]:
    class _Bound(_SiteHandler):
        pass
    _Bound.cfg = cfg
    _Bound.view = BlogView(PostStore(cfg.posts_dir))
    return _Bound


def make_site_server(cfg: FolioConfig, host: str, port: int) -> HTTPServer:
    return bind_server(host, port, make_site_handler(cfg))


def serve(cfg: FolioConfig, host: str, port: int) -> None:
    """Start the public site (blocking until Ctrl+C)."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    server = make_site_server(cfg, host, port)
    print(f"folio site  →  {base_url(server)}  (Ctrl+C to stop)")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()

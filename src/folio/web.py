"""Admin HTTP service for the blog. Loopback callers only.

Routes:
    GET    /api/posts             → posts.json contents
    GET    /api/posts/<filename>  → {"content": raw post text}
    POST   /api/posts             {title, content, date?} → {success, filename}
    PUT    /api/posts/<filename>  {title, content, date}  → {success}
    DELETE /api/posts/<filename>  → {success}
    POST   /api/upload            multipart field "image" → {url}
    GET    /admin                 → admin page
    GET    /<path>                → static file under the blog root

Errors come back as {"error": message} with the FolioError status.
"""

from __future__ import annotations

import io
import json
import logging
import mimetypes
import socket
import socketserver
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from importlib import resources
from typing import TYPE_CHECKING, Any

from werkzeug.formparser import FormDataParser
from werkzeug.http import parse_options_header

from folio.api import AdminAPI, authorize, is_loopback
from folio.errors import FolioError, NotFoundError, UploadError, ValidationError

if TYPE_CHECKING:
    from pathlib import Path

    from folio.config import FolioConfig

logger = logging.getLogger("folio.web")

_API_POSTS = "/api/posts"
_API_UPLOAD = "/api/upload"


# ─── Request helpers ──────────────────────────────────────────────────────────

def parse_multipart(content_type: str, body: bytes) -> dict[str, tuple[str | None, bytes]]:
    """Files in a multipart/form-data body as {field: (filename, data)}.

    A body werkzeug cannot parse yields no files.
    """
    mimetype, options = parse_options_header(content_type)
    if mimetype.lower() != "multipart/form-data":
        msg = "Expected multipart/form-data"
        raise UploadError(msg)
    _stream, _form, files = FormDataParser().parse(io.BytesIO(body), "multipart/form-data", len(body), options)
    fields: dict[str, tuple[str | None, bytes]] = {}
    for name, storage in files.items():
        try:
            fields[name] = (storage.filename, storage.read())
        finally:
            storage.close()
    return fields


def host_header_name(host_header: str | None) -> str | None:
    """'localhost:3001' -> 'localhost', '[::1]:3001' -> '::1'."""
    if not host_header:
        return None
    return urllib.parse.urlsplit("//" + host_header.strip()).hostname


def resolve_under(base: Path, url_path: str) -> Path:
    """Map a URL path onto a file below base. NotFoundError if it escapes."""
    rel = urllib.parse.unquote(url_path).lstrip("/")
    base = base.resolve()
    target = (base / rel).resolve()
    if not target.is_relative_to(base) or any(p.startswith(".") for p in target.relative_to(base).parts):
        msg = f"Not found: {url_path}"
        raise NotFoundError(msg)
    if target.is_dir():
        target = target / "index.html"
    if not target.is_file():
        msg = f"Not found: {url_path}"
        raise NotFoundError(msg)
    return target


def admin_page() -> bytes:
    return resources.files("folio").joinpath("static/admin.html").read_bytes()


# ─── HTTP handler ─────────────────────────────────────────────────────────────

class _Handler(BaseHTTPRequestHandler):
    cfg: FolioConfig  # injected via make_handler()
    api: AdminAPI
    _body: bytes = b""

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, method: str) -> None:
        # Drain the body up front so error replies never leave unread request data.
        try:
            self._body = self._read_body()
            authorize(self.client_address[0], host_header_name(self.headers.get("Host")))
            parsed = urllib.parse.urlparse(self.path)
            self._route(method, parsed.path)
        except FolioError as exc:
            self._json({"error": str(exc)}, exc.status)
        except Exception as exc:
            logger.exception("%s %s failed", method, self.path)
            self._json({"error": f"Internal error: {exc}"}, 500)

    def do_GET(self) -> None:
        self._dispatch("GET")

    def do_POST(self) -> None:
        self._dispatch("POST")

    def do_PUT(self) -> None:
        self._dispatch("PUT")

    def do_DELETE(self) -> None:
        self._dispatch("DELETE")

    def do_OPTIONS(self) -> None:
        self._dispatch("OPTIONS")

    def _route(self, method: str, path: str) -> None:
        if method == "OPTIONS":
            self._preflight()
        elif path == _API_POSTS:
            if method == "GET":
                self._json(self.api.list_posts().to_dict())
            elif method == "POST":
                self._create()
            else:
                self._method_not_allowed()
        elif path.startswith(_API_POSTS + "/"):
            filename = urllib.parse.unquote(path[len(_API_POSTS) + 1:])
            if method == "GET":
                self._json({"content": self.api.get_post_body(filename)})
            elif method == "PUT":
                self._update(filename)
            elif method == "DELETE":
                self.api.delete_post(filename)
                self._json({"success": True})
            else:
                self._method_not_allowed()
        elif path == _API_UPLOAD:
            if method == "POST":
                self._upload()
            else:
                self._method_not_allowed()
        elif method == "GET" and path in ("/admin", "/admin/", "/admin.html"):
            self._send(admin_page(), "text/html; charset=utf-8")
        elif method == "GET":
            self._static(path)
        else:
            self._json({"error": f"Not found: {path}"}, 404)

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    def _create(self) -> None:
        data = self._read_json()
        title, content = _require_text(data, "title"), _require_text(data, "content")
        date = _optional_text(data, "date")
        filename = self.api.create_post(title, content, date)
        self._json({"success": True, "filename": filename})

    def _update(self, filename: str) -> None:
        data = self._read_json()
        title, content = _require_text(data, "title"), _require_text(data, "content")
        self.api.update_post(filename, title, content, _optional_text(data, "date"))
        self._json({"success": True})

    def _upload(self) -> None:
        fields = parse_multipart(self.headers.get("Content-Type", ""), self._body)
        original_name, data = fields.get("image", (None, None))
        url = self.api.upload_image(original_name, data)
        self._json({"url": url})

    def _static(self, path: str) -> None:
        target = resolve_under(self.cfg.root, path)
        ctype = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        self._send(target.read_bytes(), ctype)

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def _read_body(self) -> bytes:
        raw = self.headers.get("Content-Length") or "0"
        try:
            length = int(raw)
        except ValueError:
            length = -1
        if length < 0:
            # the body cannot be drained, so the connection cannot be reused
            self.close_connection = True
            msg = f"Invalid Content-Length: {raw!r}"
            raise ValidationError(msg)
        return self.rfile.read(length) if length else b""

    def _read_json(self) -> dict[str, Any]:
        raw = self._body
        try:
            data = json.loads(raw or b"{}")
        except json.JSONDecodeError as exc:
            msg = f"Invalid JSON body: {exc}"
            raise ValidationError(msg) from exc
        if not isinstance(data, dict):
            msg = "JSON body must be an object"
            raise ValidationError(msg)
        return data

    def _cors_headers(self) -> None:
        origin = self.headers.get("Origin")
        if origin and origin in self.cfg.server.cors_origins:
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Vary", "Origin")

    def _preflight(self) -> None:
        self.send_response(204)
        self._cors_headers()
        self.send_header("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _method_not_allowed(self) -> None:
        self._json({"error": f"Method {self.command} not allowed"}, 405)

    def _json(self, payload: Any, status: int = 200) -> None:
        self._send(json.dumps(payload, ensure_ascii=False).encode(), "application/json; charset=utf-8", status)

    def _send(self, body: bytes, ctype: str, status: int = 200) -> None:
        self.send_response(status)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(body)))
        self._cors_headers()
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


def _require_text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        msg = f"'{key}' is required"
        raise ValidationError(msg)
    return value


def _optional_text(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        msg = f"'{key}' must be a string"
        raise ValidationError(msg)
    return value


class _ThreadingHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


class _ThreadingHTTPServerV6(_ThreadingHTTPServer):
    address_family = socket.AF_INET6


def bind_server(host: str, port: int, handler: type[BaseHTTPRequestHandler]) -> HTTPServer:
    """Threaded server on host:port; IPv6 literals (with or without []) get an AF_INET6 socket."""
    host = host.strip("[]")
    cls = _ThreadingHTTPServerV6 if ":" in host else _ThreadingHTTPServer
    try:
        return cls((host, port), handler)
    except OSError as exc:
        msg = f"Could not listen on {host} port {port}: {exc}"
        raise FolioError(msg) from exc


def base_url(server: HTTPServer) -> str:
    host, port = server.server_address[:2]
    if ":" in str(host):
        host = f"[{host}]"
    return f"http://{host}:{port}"


def make_handler(cfg: FolioConfig, api: AdminAPI | None = None) -> type[_Handler]:
    class _Bound(_Handler):
        pass
    _Bound.cfg = cfg
    _Bound.api = api or AdminAPI.from_config(cfg)
    return _Bound


def make_server(cfg: FolioConfig, host: str, port: int, api: AdminAPI | None = None) -> HTTPServer:
    return bind_server(host, port, make_handler(cfg, api))


def serve(cfg: FolioConfig, host: str, port: int, *, open_browser: bool = False) -> None:
    """Start the admin service (blocking until Ctrl+C)."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    if not is_loopback(host):
        msg = f"Refusing to bind admin service to non-loopback address {host!r}"
        raise FolioError(msg)
    cfg.ensure_dirs()
    server = make_server(cfg, host, port)
    url = base_url(server) + "/admin"
    print(f"folio admin  →  {url}  (Ctrl+C to stop)")
    if open_browser:
        import webbrowser

        if not webbrowser.open(url):
            print(f"Open your browser at {url}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


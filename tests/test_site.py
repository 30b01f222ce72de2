"""Tests for the public site server."""

import json

from conftest import request


def _seed(api, n):
    for i in range(1, n + 1):
        api.create_post(f"Post {i}", f"Body {i}", f"2024-01-{i:02d}")


class TestSite:

    def test_first_page(self, site_url, api):
        _seed(api, 12)
        status, headers, body = request("GET", f"{site_url}/")
        html = body.decode()
        assert status == 200
        assert headers["Content-Type"].startswith("text/html")
        assert "Post 12" in html and "Post 3" in html
        assert "Post 2<" not in html
        assert "<title>Test Blog</title>" in html
        assert 'data-page="2"' in html

    def test_partial_page(self, site_url, api):
        _seed(api, 12)
        status, _h, body = request("GET", f"{site_url}/?page=2&partial=1")
        data = json.loads(body)
        assert status == 200
        assert data["page"] == 2
        assert data["status"] == "rendered"
        assert "Post 2" in data["content"] and "Post 1" in data["content"]
        assert "Post 3" not in data["content"]
        assert "← Previous" in data["pagination"]

    def test_corrupt_index_shows_error(self, site_url, cfg):
        cfg.index_path.write_text("{oops")
        status, _h, body = request("GET", f"{site_url}/")
        assert status == 200
        assert '<div class="error">Failed to load blog posts.</div>' in body.decode()

    def test_raw_files(self, site_url, api):
        filename = api.create_post("Raw", "text", "2024-01-01")
        status, headers, body = request("GET", f"{site_url}/posts/{filename}")
        assert status == 200
        assert headers["Content-Type"].startswith("text/markdown")
        assert body.decode().endswith("text")

        status, _h, body = request("GET", f"{site_url}/posts/posts.json")
        assert json.loads(body)["posts"][0]["filename"] == filename

    def test_not_found(self, site_url):
        assert request("GET", f"{site_url}/posts/../folio.toml")[0] == 404
        assert request("GET", f"{site_url}/posts/.gitignore")[0] == 404
        assert request("GET", f"{site_url}/admin")[0] == 404

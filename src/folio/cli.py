"""folio CLI — Markdown blog with a localhost admin service.

Commands:
    folio init [NAME]          create folio.toml + posts/posts.json
    folio admin                start the admin service (loopback only)
    folio site                 start the public site
    folio list                 table of indexed posts
    folio new TITLE            create a post (commits like the admin API)
    folio rm FILENAME          delete a post
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from folio.api import AdminAPI
from folio.config import FolioConfig, init_config, load_config
from folio.errors import FolioError
from folio.render import format_date, sort_posts

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> FolioConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _api(cfg: FolioConfig) -> AdminAPI:
    cfg.ensure_dirs()
    return AdminAPI.from_config(cfg)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="folio")
def cli() -> None:
    """folio — Markdown blog with a localhost admin service."""


# ---------------------------------------------------------------------------
# folio init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Blog root")
def init(name: str | None, root: str) -> None:
    """Create folio.toml and the posts/ directory."""
    root_path = Path(root).resolve()
    root_path.mkdir(parents=True, exist_ok=True)
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("folio.toml already exists — skipping init")

    cfg = load_config(root_path)
    cfg.ensure_dirs()
    click.echo(f"Posts dir : {cfg.posts_dir}")
    click.echo(f"Index     : {cfg.index_path}")


# ---------------------------------------------------------------------------
# folio admin / folio site
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", "-b", default=None, help="Bind address (default: folio.toml [server].host or 127.0.0.1)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: folio.toml [server].port or 3001)")
@click.option("--open", "open_browser", is_flag=True, help="Open the admin page in a browser")
def admin(host: str | None, port: int | None, open_browser: bool) -> None:
    """Start the admin service.

    \b
    folio admin             # http://127.0.0.1:3001/admin
    folio admin --open
    """
    cfg = _load_cfg()
    from folio.web import serve as _admin_serve

    try:
        _admin_serve(cfg, host=host or cfg.server.host, port=port or cfg.server.port, open_browser=open_browser)
    except FolioError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option("--host", "-b", default=None, help="Bind address (default: folio.toml [site].host or 127.0.0.1)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: folio.toml [site].port or 8000)")
def site(host: str | None, port: int | None) -> None:
    """Start the public site.

    \b
    folio site                  # http://127.0.0.1:8000
    folio site --host 0.0.0.0   # expose on LAN
    """
    cfg = _load_cfg()
    from folio.site import serve as _site_serve

    try:
        _site_serve(cfg, host=host or cfg.site.host, port=port or cfg.site.port)
    except FolioError as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# folio list / new / rm
# ---------------------------------------------------------------------------


@cli.command("list")
def list_cmd() -> None:
    """List posts, newest first."""
    from rich.console import Console
    from rich.table import Table

    cfg = _load_cfg()
    try:
        index = _api(cfg).list_posts()
    except FolioError as exc:
        raise click.ClickException(str(exc)) from exc

    if not index.posts:
        click.echo("No posts yet.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Title")
    table.add_column("File", style="dim")
    for meta in sort_posts(index.posts):
        table.add_row(format_date(meta.date), meta.title, meta.filename)
    Console().print(table)


@cli.command()
@click.argument("title")
@click.option("--date", "post_date", default=None, help="YYYY-MM-DD (default: today, UTC)")
@click.option("--file", "body_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Read the Markdown body from a file (default: stdin when piped)")
@click.option("--content", default=None, help="Markdown body text")
def new(title: str, post_date: str | None, body_file: Path | None, content: str | None) -> None:
    """Create a post and commit it."""
    if body_file is not None and content is not None:
        raise click.UsageError("Use either --file or --content, not both")
    if body_file is not None:
        body = body_file.read_text(encoding="utf-8")
    elif content is not None:
        body = content
    elif not sys.stdin.isatty():
        body = sys.stdin.read()
    else:
        body = ""

    cfg = _load_cfg()
    try:
        filename = _api(cfg).create_post(title, body, post_date)
    except FolioError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(filename)


@cli.command()
@click.argument("filename")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
def rm(filename: str, yes: bool) -> None:
    """Delete a post and commit the removal."""
    if not yes:
        click.confirm(f"Delete {filename}?", abort=True)
    cfg = _load_cfg()
    try:
        _api(cfg).delete_post(filename)
    except FolioError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deleted {filename}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

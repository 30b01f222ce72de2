"""Tests for the folio CLI."""

import json

from click.testing import CliRunner

from folio.cli import cli


def _init(runner, root):
    result = runner.invoke(cli, ["init", "My Blog", "--dir", str(root)])
    assert result.exit_code == 0, result.output
    toml = root / "folio.toml"
    toml.write_text(toml.read_text() + "\n[git]\nenabled = false\n")


def test_init_creates_layout(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["init", "My Blog", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    assert "Created" in result.output
    assert json.loads((tmp_path / "posts" / "posts.json").read_text()) == {"posts": []}

    again = runner.invoke(cli, ["init", "--dir", str(tmp_path)])
    assert again.exit_code == 0
    assert "already exists" in again.output


def test_new_list_rm(tmp_path, monkeypatch):
    runner = CliRunner()
    _init(runner, tmp_path)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(cli, ["new", "Hello World!", "--date", "2024-01-15", "--content", "Body"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "2024-01-15-hello-world.md"
    assert (tmp_path / "posts" / "2024-01-15-hello-world.md").exists()

    result = runner.invoke(cli, ["list"])
    assert result.exit_code == 0
    assert "Hello World!" in result.output
    assert "January 15, 2024" in result.output

    result = runner.invoke(cli, ["rm", "2024-01-15-hello-world.md", "--yes"])
    assert result.exit_code == 0
    assert not (tmp_path / "posts" / "2024-01-15-hello-world.md").exists()

    result = runner.invoke(cli, ["list"])
    assert "No posts yet." in result.output


def test_new_from_file(tmp_path, monkeypatch):
    runner = CliRunner()
    _init(runner, tmp_path)
    monkeypatch.chdir(tmp_path)
    body = tmp_path / "draft.md"
    body.write_text("# Draft\n\ntext\n")

    result = runner.invoke(cli, ["new", "Draft", "--date", "2024-02-01", "--file", str(body)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "posts" / "2024-02-01-draft.md").read_text().endswith("# Draft\n\ntext\n")


def test_errors_are_reported(tmp_path, monkeypatch):
    runner = CliRunner()
    _init(runner, tmp_path)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(cli, ["new", "Bad", "--date", "yesterday", "--content", "x"])
    assert result.exit_code == 1
    assert "Invalid date" in result.output

    result = runner.invoke(cli, ["rm", "2024-01-01-missing.md", "--yes"])
    assert result.exit_code == 1
    assert "Post not found" in result.output


def test_rm_requires_confirmation(tmp_path, monkeypatch):
    runner = CliRunner()
    _init(runner, tmp_path)
    monkeypatch.chdir(tmp_path)
    runner.invoke(cli, ["new", "Keep", "--date", "2024-01-01", "--content", "x"])

    result = runner.invoke(cli, ["rm", "2024-01-01-keep.md"], input="n\n")
    assert result.exit_code == 1
    assert (tmp_path / "posts" / "2024-01-01-keep.md").exists()

"""Version-control side channel: stage, commit and push after each mutation.

Notifier.notify() never raises. Every step is attempted once, failures are
logged and the caller carries on. Git runs synchronously in the request
thread; GitConfig.timeout bounds each step (0 = wait forever).
"""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING, Protocol

from folio.errors import NotifyFailure

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from folio.config import FolioConfig

logger = logging.getLogger("folio.vcs")

ADD_POST = "Add post"
UPDATE_POST = "Update post"
DELETE_POST = "Delete post"


class VersionControl(Protocol):
    """Backend for the three notifier steps. Each raises NotifyFailure."""

    def stage(self, paths: Sequence[Path]) -> None: ...

    def commit(self, message: str) -> None: ...

    def push(self) -> None: ...


class NullVersionControl:
    """Does nothing. Used when [git] enabled = false."""

    def stage(self, paths: Sequence[Path]) -> None:
        pass

    def commit(self, message: str) -> None:
        pass

    def push(self) -> None:
        pass


class GitVersionControl:
    """Shells out to the git CLI in the blog root."""

    def __init__(self, root: Path, *, timeout: float | None = 60.0, git: str = "git") -> None:
        self.root = root
        self.timeout = timeout or None
        self.git = git

    def _run(self, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.git, *args],
                cwd=self.root,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"
            msg = f"git {args[0]} failed: {detail}"
            raise NotifyFailure(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"git {args[0]} timed out after {exc.timeout}s"
            raise NotifyFailure(msg) from exc
        except OSError as exc:
            msg = f"git {args[0]} could not run: {exc}"
            raise NotifyFailure(msg) from exc
        return result.stdout

    def stage(self, paths: Sequence[Path]) -> None:
        self._run("add", "--", *(str(p) for p in paths))

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def push(self) -> None:
        self._run("push")


def commit_message(action: str, title: str, footer: str = "") -> str:
    """``"<action>: <title>"``, a blank line, then the footer (if any)."""
    head = f"{action}: {title}"
    return f"{head}\n\n{footer}" if footer else head


class Notifier:
    """Best-effort commit of the posts directory."""

    def __init__(
        self,
        vcs: VersionControl,
        paths: Sequence[Path],
        *,
        push: bool = True,
        footer: str = "",
    ) -> None:
        self.vcs = vcs
        self.paths = list(paths)
        self.push = push
        self.footer = footer

    @classmethod
    def from_config(cls, cfg: FolioConfig) -> Notifier:
        vcs: VersionControl
        if cfg.git.enabled:
            vcs = GitVersionControl(cfg.root, timeout=cfg.git.timeout)
        else:
            vcs = NullVersionControl()
        return cls(vcs, [cfg.posts_dir], push=cfg.git.push, footer=cfg.git.footer)

    def notify(self, action: str, title: str) -> bool:
        """Stage, commit, push. Returns True if the commit step succeeded."""
        try:
            self.vcs.stage(self.paths)
        except Exception as exc:  # noqa: BLE001
            logger.warning("git add failed: %s", exc)

        committed = False
        try:
            self.vcs.commit(commit_message(action, title, self.footer))
            committed = True
            logger.info("git commit: %s: %s", action, title)
        except Exception as exc:  # noqa: BLE001
            logger.warning("git commit failed: %s", exc)

        if self.push:
            try:
                self.vcs.push()
                logger.info("git push ok")
            except Exception as exc:  # noqa: BLE001
                logger.warning("git push failed (no remote or connection issue): %s", exc)
        return committed

"""Publish a file tree to a branch of a git remote, gh-pages style.

The remote branch is cloned into a scratch directory, its contents replaced by
the selected files, and the result committed and pushed. Publishing identical
content produces no commit.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Sequence

import git
import git.exc

from ..orchestrator.logging import get_logger
from .base import PublishError

log = get_logger("docship.publishers.ghpages")


class GhPagesPublisher:
    def __init__(
        self,
        repo_path: str | Path = ".",
        remote: str = "origin",
        branch: str = "gh-pages",
        cache_dir: str | Path = ".docship/gh-pages",
        message: str = "Update documentation",
        push: bool = True,
        remote_url: Optional[str] = None,
    ):
        self.repo_path = Path(repo_path)
        self.remote = remote
        self.branch = branch
        self.cache_dir = Path(cache_dir)
        self.message = message
        self.push = push
        self._remote_url = remote_url

    def remote_url(self) -> str:
        if self._remote_url:
            return self._remote_url
        try:
            repo = git.Repo(self.repo_path, search_parent_directories=True)
            return next(iter(repo.remote(self.remote).urls))
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise PublishError(f"Not a git repository: {self.repo_path}") from e
        except (ValueError, StopIteration) as e:
            # GitPython raises ValueError for a remote that does not exist
            raise PublishError(f"Unknown git remote: {self.remote}", target=self.remote) from e

    def publish(self, files: Sequence[Path], base_dir: Path) -> bool:
        files = list(files)
        if not files:
            raise PublishError(f"Nothing to publish under {base_dir}", target=self.branch)
        url = self.remote_url()
        target = f"{url}#{self.branch}"
        try:
            repo = self._clone(url)
            self._checkout(repo)
            _clear_worktree(self.cache_dir)
            _copy_tree(files, Path(base_dir), self.cache_dir)
            repo.git.add("-A")
            if not repo.git.status("--porcelain").strip():
                log.info("No changes to publish on %s", target)
                return False
            commit = repo.index.commit(self.message)
            log.info("Committed %d files to %s (%s)", len(files), self.branch, commit.hexsha[:8])
            if self.push:
                repo.git.push("origin", f"{self.branch}:{self.branch}")
                log.info("Pushed %s", target)
        except git.exc.GitCommandError as e:
            detail = (e.stderr or "").strip() or str(e)
            raise PublishError(f"git failed for {target}: {detail}", target=target) from e
        return True

    def _clone(self, url: str) -> git.Repo:
        # Always start from a fresh clone so stale local commits never leak into a push
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        self.cache_dir.parent.mkdir(parents=True, exist_ok=True)
        log.info("Cloning %s into %s", url, self.cache_dir)
        return git.Repo.clone_from(url, self.cache_dir)

    def _checkout(self, repo: git.Repo) -> None:
        if repo.git.ls_remote("--heads", "origin", self.branch).strip():
            repo.git.checkout("-B", self.branch, f"origin/{self.branch}")
        else:
            log.info("Remote has no %s branch, creating it", self.branch)
            repo.git.symbolic_ref("HEAD", f"refs/heads/{self.branch}")


def _clear_worktree(work: Path) -> None:
    for entry in work.iterdir():
        if entry.name == ".git":
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def _copy_tree(files: Sequence[Path], base_dir: Path, dest: Path) -> None:
    base = base_dir.resolve()
    for src in files:
        try:
            rel = Path(src).resolve().relative_to(base)
        except ValueError as e:
            raise PublishError(f"{src} is outside of {base_dir}") from e
        out = dest / rel
        out.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, out)

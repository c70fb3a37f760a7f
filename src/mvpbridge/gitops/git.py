"""Thin git wrappers used to commit normalization steps one by one."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

__all__ = [
    "COMMIT_PREFIX",
    "GitError",
    "commit_all",
    "is_git_repo",
    "remote_url",
    "tool_available",
]

logger = logging.getLogger(__name__)

COMMIT_PREFIX = "[mvpbridge]"


class GitError(Exception):
    """Raised when a git command fails."""


def _git(root: str | Path, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitError("git not installed") from e
    except subprocess.CalledProcessError as e:
        raise GitError(f"git {args[0]} failed: {e.stderr.strip() or e.returncode}") from e
    return result.stdout


def tool_available(name: str) -> bool:
    """True if *name* resolves on PATH."""
    return shutil.which(name) is not None


def is_git_repo(root: str | Path) -> bool:
    return (Path(root) / ".git").exists()


def commit_all(root: str | Path, message: str) -> str:
    """Stage everything and commit as ``[mvpbridge] <message>``.

    Returns the full commit message.
    """
    full = f"{COMMIT_PREFIX} {message}"
    _git(root, "add", "-A")
    _git(root, "commit", "-m", full)
    logger.info("Committed: %s", full)
    return full


def remote_url(root: str | Path, remote: str = "origin") -> str:
    """HTTPS URL of *remote* without the ``.git`` suffix.

    SSH remotes (``git@github.com:owner/repo``) are rewritten to HTTPS.
    """
    try:
        url = _git(root, "config", "--get", f"remote.{remote}.url").strip()
    except GitError as e:
        raise GitError("no git remote configured") from e
    if not url:
        raise GitError("no git remote configured")
    if url.startswith("git@github.com:"):
        url = "https://github.com/" + url.removeprefix("git@github.com:")
    return url.removesuffix(".git")

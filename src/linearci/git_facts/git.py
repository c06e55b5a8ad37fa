# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.
    Every other function builds on top of this to ensure:
    - consistent invocation of git
    - consistent text output (not bytes)
    - minimal parsing logic duplicated elsewhere

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.
             Useful if the caller is not already inside the repo.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero.
        FileNotFoundError: git is not installed.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        text=True,
        stderr=subprocess.PIPE,
    )
    return out.strip()


def is_work_tree(cwd: Optional[str | Path] = None) -> bool:
    """True if cwd is inside a git work tree (and git is installed)."""
    try:
        return _git(["rev-parse", "--is-inside-work-tree"], cwd=cwd) == "true"
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def head_sha(cwd: Optional[str | Path] = None) -> str:
    """
    Return the full SHA hash of the current HEAD commit.

    Exported to later stages as GIT_COMMIT, so deployed builds can be
    traced back to the exact source revision.
    """
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def current_branch(cwd: Optional[str | Path] = None) -> Optional[str]:
    """
    Return the checked out branch name, or None on a detached HEAD.
    """
    # `--abbrev-ref HEAD` prints "HEAD" when detached
    name = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    return None if name == "HEAD" else name


def clone(repo_url: str, dest: Path) -> None:
    _git(["clone", repo_url, str(dest)])


def fetch(cwd: Path, remote: str = "origin") -> None:
    _git(["fetch", remote], cwd=cwd)


def checkout(ref: str, cwd: Path) -> None:
    _git(["checkout", ref], cwd=cwd)


def normalize_branch(name: Optional[str]) -> Optional[str]:
    """
    Strip the prefixes CI servers put in front of branch names.

        "origin/main"      -> "main"
        "refs/heads/main"  -> "main"
    """
    if not name:
        return None
    name = name.strip()
    for prefix in ("refs/heads/", "refs/remotes/origin/", "origin/"):
        if name.startswith(prefix):
            return name[len(prefix):]
    return name

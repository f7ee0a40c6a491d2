"""Scan options and repo discovery — walks search roots for git repositories."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from system import FsOps, LocalFs

logger = logging.getLogger(__name__)

DEFAULT_ROOT = Path("~/src")
DEFAULT_DEPTH = 1
DEFAULT_REWRITE_BINARY = "git_rewrite"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass
class RepoHandle:
    """A discovered git repository and the search root it was found under."""

    path: Path
    name: str
    root_display: str
    root_full: Path


@dataclass
class ScanOptions:
    """Everything one scan needs to know, resolved once up front."""

    roots: list[Path] = field(default_factory=list)
    depth: int = DEFAULT_DEPTH
    include_untracked: bool = True
    refresh_remotes: bool = False
    debug: bool = False
    rewrite_config: Path | None = None
    rewrite_binary: Path = Path(DEFAULT_REWRITE_BINARY)
    show_progress: bool = False


def get_roots(override: list[str] | None = None) -> list[Path]:
    """Get the root directories to scan for repos.

    Priority: override > REPO_AUDIT_ROOTS env var (os.pathsep separated) > ~/src
    """
    if override:
        return [Path(root) for root in override]
    env_roots = os.getenv("REPO_AUDIT_ROOTS")
    if env_roots:
        roots = [Path(root) for root in env_roots.split(os.pathsep) if root.strip()]
        if roots:
            return roots
    return [DEFAULT_ROOT]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning("Ignoring %s=%r: expected a boolean flag", name, raw)
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: expected an integer", name, raw)
        return default
    if value < 0:
        logger.warning("Ignoring %s=%r: must not be negative", name, raw)
        return default
    return value


def get_scan_interval() -> int:
    """Seconds between background rescans; 0 disables them."""
    return _env_int("REPO_AUDIT_SCAN_INTERVAL", 0)


def get_options(roots: list[str] | None = None) -> ScanOptions:
    """Build scan options from the environment."""
    rewrite_config = os.getenv("REPO_AUDIT_REWRITE_CONFIG")
    return ScanOptions(
        roots=get_roots(roots),
        depth=_env_int("REPO_AUDIT_DEPTH", DEFAULT_DEPTH),
        include_untracked=not _env_flag("REPO_AUDIT_NO_UNTRACKED", False),
        refresh_remotes=_env_flag("REPO_AUDIT_REFRESH_REMOTES", False),
        debug=_env_flag("REPO_AUDIT_DEBUG", False),
        rewrite_config=Path(rewrite_config) if rewrite_config else None,
        rewrite_binary=Path(os.getenv("REPO_AUDIT_REWRITE_BINARY") or DEFAULT_REWRITE_BINARY),
        show_progress=_env_flag("REPO_AUDIT_PROGRESS", sys.stderr.isatty()),
    )


def find_repos(roots: list[Path], depth: int, fs: FsOps | None = None) -> list[Path]:
    """Walk the search roots and discover all git repositories.

    A root that is itself a repository is recorded as-is. Otherwise ``.git``
    directories are looked for up to ``depth + 1`` levels below the root, so
    ``depth=0`` only inspects the root and ``depth=1`` its direct children.
    Symlinks are never followed. Results are sorted by directory name.
    """
    fs = fs or LocalFs()
    repos: set[Path] = set()

    for raw_root in roots:
        root = fs.expand_tilde(raw_root)
        if not root.exists():
            logger.debug("root missing: %s", root)
            continue

        if fs.is_repo(root):
            logger.debug("repo: %s", root)
            repos.add(root)
            continue

        max_depth = depth + 1
        for dirpath, dirnames, _ in os.walk(root, followlinks=False):
            current = Path(dirpath)
            level = len(current.relative_to(root).parts)
            marker = current / ".git"
            if ".git" in dirnames and not marker.is_symlink():
                logger.debug("repo: %s", current)
                repos.add(current)
            # Children of this directory sit at level + 1; only descend while
            # their own children (level + 2) are still within range.
            if level + 2 > max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = [d for d in dirnames if d != ".git"]

    return sorted(repos, key=lambda p: (p.name, str(p)))

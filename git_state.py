"""Git state facade — runs git in a repo and parses its output into metrics."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_DIFF_TAIL = ["--ignore-submodules", "--", "."]
_UNTRACKED = ["ls-files", "--others", "--exclude-standard"]


@dataclass
class GitOutput:
    """Exit status and decoded stdout of one git invocation."""

    returncode: int
    stdout: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRunner(Protocol):
    def run_git(self, repo: Path, args: list[str]) -> GitOutput | None: ...


class SubprocessGitRunner:
    """Run ``git -C <repo> <args>``; a process that cannot be spawned yields None."""

    def __init__(self, executable: str = "git") -> None:
        self.executable = executable

    def run_git(self, repo: Path, args: list[str]) -> GitOutput | None:
        try:
            result = subprocess.run(
                [self.executable, "-C", str(repo), *args],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.debug("git %s failed to start in %s: %s", " ".join(args), repo, e)
            return None
        return GitOutput(returncode=result.returncode, stdout=result.stdout)


@dataclass
class ChangeMetrics:
    """Summary of a diff: changed lines, changed files, untracked files."""

    lines: int = 0
    files: int = 0
    untracked: int = 0


def parse_numstat(text: str) -> tuple[int, int]:
    """Return (total lines changed, files changed) from ``git diff --numstat``.

    Each line is ``<added>\\t<deleted>\\t<path>``; binary files report ``-``
    for both counts and contribute no lines but still count as a file.
    """
    total_lines = 0
    files = 0
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        files += 1
        total_lines += _parse_count(parts[0]) + _parse_count(parts[1])
    return total_lines, files


def _parse_count(field: str) -> int:
    try:
        value = int(field)
    except ValueError:
        return 0
    return value if value >= 0 else 0


def count_lines(text: str) -> int:
    """Count non-empty lines; git prints one path per line."""
    return sum(1 for line in text.splitlines() if line.strip())


def _untracked_count(repo: Path, git: GitRunner) -> int:
    out = git.run_git(repo, _UNTRACKED)
    if out is None:
        return 0
    return count_lines(out.stdout)


def uncommitted_metrics(repo: Path, include_untracked: bool, git: GitRunner) -> ChangeMetrics:
    """Metrics for unstaged changes, plus untracked files when requested."""
    metrics = ChangeMetrics()
    out = git.run_git(repo, ["diff", "--numstat", *_DIFF_TAIL])
    if out is not None:
        metrics.lines, metrics.files = parse_numstat(out.stdout)
    if include_untracked:
        metrics.untracked = _untracked_count(repo, git)
    return metrics


def staged_metrics(repo: Path, git: GitRunner) -> ChangeMetrics:
    """Metrics for staged changes; the untracked count is always included."""
    metrics = ChangeMetrics()
    out = git.run_git(repo, ["diff", "--cached", "--numstat", *_DIFF_TAIL])
    if out is not None:
        metrics.lines, metrics.files = parse_numstat(out.stdout)
    metrics.untracked = _untracked_count(repo, git)
    return metrics


def has_uncommitted(repo: Path, include_untracked: bool, git: GitRunner) -> bool:
    """True when the work tree differs from the index (or has untracked files)."""
    out = git.run_git(repo, ["diff", "--quiet", *_DIFF_TAIL])
    if out is None:
        # git unavailable: treat as clean
        return False
    if not out.ok:
        return True
    if include_untracked:
        untracked = git.run_git(repo, _UNTRACKED)
        if untracked is not None and untracked.stdout.strip():
            return True
    return False


def has_staged(repo: Path, git: GitRunner) -> bool:
    out = git.run_git(repo, ["diff", "--cached", "--quiet", *_DIFF_TAIL])
    return out is not None and not out.ok


def current_branch(repo: Path, git: GitRunner) -> str | None:
    out = git.run_git(repo, ["rev-parse", "--abbrev-ref", "HEAD"])
    if out is None or not out.ok:
        return None
    return out.stdout.strip() or None


def list_local_branches_with_upstream(repo: Path, git: GitRunner) -> list[tuple[str, str]]:
    """List (branch, upstream) for local branches that track an upstream."""
    out = git.run_git(
        repo,
        ["for-each-ref", "--format=%(refname:short) %(upstream:short)", "refs/heads"],
    )
    if out is None or not out.ok:
        return []
    branches: list[tuple[str, str]] = []
    for line in out.stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1].strip():
            branches.append((parts[0], parts[1]))
    return branches


def fetch_remote(repo: Path, git: GitRunner, remote: str) -> bool:
    """Best-effort fetch of one remote; failures are only logged."""
    out = git.run_git(repo, ["fetch", "--prune", "--no-tags", remote])
    if out is None or not out.ok:
        logger.debug("fetch of %s failed in %s", remote, repo)
        return False
    return True


def ahead_count(repo: Path, git: GitRunner, branch: str, upstream: str) -> int | None:
    """Number of commits on ``branch`` that are not on ``upstream``."""
    out = git.run_git(repo, ["rev-list", "--count", f"{upstream}..{branch}"])
    if out is None or not out.ok:
        return None
    try:
        return int(out.stdout.strip())
    except ValueError:
        return None


def commit_age_bounds(
    repo: Path,
    git: GitRunner,
    now: datetime,
    branch: str,
    upstream: str,
) -> tuple[int | None, int | None] | None:
    """Ages in seconds of the (oldest, newest) commits in ``upstream..branch``.

    Returns ``(None, None)`` when the range has no commits and ``None`` when
    git could not be queried.
    """
    out = git.run_git(repo, ["log", "--format=%ct", f"{upstream}..{branch}"])
    if out is None or not out.ok:
        return None
    now_secs = max(int(now.timestamp()), 0)
    ages: list[int] = []
    for line in out.stdout.splitlines():
        try:
            committed = int(line.strip())
        except ValueError:
            continue
        ages.append(max(now_secs - committed, 0))
    if not ages:
        return None, None
    return max(ages), min(ages)


def has_commits(repo: Path, git: GitRunner) -> bool:
    """Whether HEAD resolves, i.e. the repository has at least one commit."""
    out = git.run_git(repo, ["rev-parse", "--verify", "HEAD"])
    return out is not None and out.ok

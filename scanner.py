"""Git repo scanner — collects local git state for every repository under every root."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from config import DEFAULT_ROOT, RepoHandle, ScanOptions, find_repos
from git_state import (
    GitRunner,
    ahead_count,
    commit_age_bounds,
    current_branch,
    fetch_remote,
    has_commits,
    has_staged,
    has_uncommitted,
    list_local_branches_with_upstream,
    staged_metrics,
    uncommitted_metrics,
)
from models import PushableEntry, RepoSummary, ReportData, StagedEntry, UncommittedEntry
from system import FsOps

logger = logging.getLogger(__name__)


def resolve_roots(roots: list[Path], fs: FsOps) -> list[tuple[str, Path]]:
    """Pair each root as written with its expanded absolute path."""
    resolved: list[tuple[str, Path]] = []
    for root in roots or [DEFAULT_ROOT]:
        expanded = fs.expand_tilde(root)
        full = expanded if expanded.is_absolute() else Path.cwd() / expanded
        resolved.append((str(root), full))
    return resolved


def scan_repo(
    handle: RepoHandle,
    options: ScanOptions,
    git: GitRunner,
    now: datetime,
    data: ReportData,
) -> None:
    """Scan a single repository and append its entries to ``data``."""
    repo = handle.path
    root_full = str(handle.root_full)
    branch = current_branch(repo, git) or "HEAD"

    if has_uncommitted(repo, options.include_untracked, git):
        metrics = uncommitted_metrics(repo, options.include_untracked, git)
        data.uncommitted.append(
            UncommittedEntry(
                repo=handle.name,
                branch=branch,
                lines=metrics.lines,
                files=metrics.files,
                untracked=metrics.untracked,
                root_display=handle.root_display,
                root_full=root_full,
            )
        )

    if has_staged(repo, git):
        metrics = staged_metrics(repo, git)
        data.staged.append(
            StagedEntry(
                repo=handle.name,
                branch=branch,
                lines=metrics.lines,
                files=metrics.files,
                untracked=metrics.untracked,
                root_display=handle.root_display,
                root_full=root_full,
            )
        )

    branches = list_local_branches_with_upstream(repo, git)
    if not branches and has_commits(repo, git):
        logger.debug("%s: no branch has an upstream configured", repo)

    if options.refresh_remotes and branches:
        remotes = sorted({upstream.split("/", 1)[0] for _, upstream in branches if "/" in upstream})
        for remote in remotes:
            fetch_remote(repo, git, remote)

    head_revs: int | None = None
    head_earliest: int | None = None
    head_latest: int | None = None

    for branch_name, upstream in branches:
        is_head = branch_name == branch
        revs = ahead_count(repo, git, branch_name, upstream)
        if revs is None:
            continue
        if is_head:
            head_revs = revs
        if revs == 0:
            continue

        earliest, latest = commit_age_bounds(repo, git, now, branch_name, upstream) or (None, None)
        if is_head:
            head_earliest, head_latest = earliest, latest
        data.pushable.append(
            PushableEntry(
                repo=handle.name,
                branch=branch_name,
                revs=revs,
                earliest_secs=earliest,
                latest_secs=latest,
                root_display=handle.root_display,
                root_full=root_full,
            )
        )

    data.repos.append(
        RepoSummary(
            repo=handle.name,
            branch=branch,
            path=str(repo),
            root_display=handle.root_display,
            root_full=root_full,
            head_revs=head_revs,
            head_earliest_secs=head_earliest,
            head_latest_secs=head_latest,
        )
    )


def collect_report_data(
    options: ScanOptions,
    fs: FsOps,
    git: GitRunner,
    now: datetime,
) -> ReportData:
    """Scan every root and build the uncommitted/staged/pushable report."""
    rooted = resolve_roots(options.roots, fs)
    data = ReportData(multi_root=len(rooted) > 1)

    for root_display, root_full in rooted:
        repos = find_repos([root_full], options.depth, fs)
        logger.debug(
            "root_display=%s root_full=%s depth=%d repos_found=%d",
            root_display,
            root_full,
            options.depth,
            len(repos),
        )
        for repo in repos:
            handle = RepoHandle(
                path=repo,
                name=repo.name,
                root_display=root_display,
                root_full=root_full,
            )
            scan_repo(handle, options, git, now, data)

    return data

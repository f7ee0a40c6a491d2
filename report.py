"""Full scan pipeline and the plain-text summary of its report."""

from __future__ import annotations

import logging

from config import ScanOptions
from git_state import GitRunner, SubprocessGitRunner
from models import ReportData
from progress import ProgressBoard
from reconcile import build_untracked_entries
from rewrite_client import CommandRunner
from rewrite_config import build_pairs_with_paths, load_config
from rewrite_executor import collect_entries
from scanner import collect_report_data
from system import Clock, FsOps, LocalFs, SystemClock

logger = logging.getLogger(__name__)

SEC_PER_MIN = 60
SEC_PER_HOUR = 60 * 60
SEC_PER_DAY = 60 * 60 * 24


def build_report(
    options: ScanOptions,
    *,
    fs: FsOps | None = None,
    git: GitRunner | None = None,
    clock: Clock | None = None,
    runner: CommandRunner | None = None,
    board: ProgressBoard | None = None,
) -> ReportData:
    """Collect git state and, when configured, run the rewrite audit.

    "Now" is read once so every age in the report shares the same instant.
    Rewrite-audit errors propagate; git failures never do.
    """
    fs = fs or LocalFs()
    git = git or SubprocessGitRunner()
    clock = clock or SystemClock()
    now = clock.now()

    data = collect_report_data(options, fs, git, now)

    if options.rewrite_config is not None:
        build = build_pairs_with_paths(load_config(options.rewrite_config))
        board = board or ProgressBoard(enabled=options.show_progress)
        data.git_rewrite = collect_entries(
            build.pairs,
            options.rewrite_binary,
            now,
            runner=runner,
            board=board,
        )
        data.untracked = build_untracked_entries(data.repos, build)

    return data


def humanize_age(secs: int) -> str:
    """Render an age in seconds with one decimal place."""
    if secs < SEC_PER_HOUR:
        return f"{secs / SEC_PER_MIN:.1f} min"
    if secs < SEC_PER_DAY:
        return f"{secs / SEC_PER_HOUR:.1f} hr"
    return f"{secs / SEC_PER_DAY:.1f} days"


def _age(secs: int | None) -> str:
    return "n/a" if secs is None else humanize_age(secs)


def generate_report(data: ReportData) -> str:
    """One line per section, e.g. ``pushable: repo (2 revs, earliest: ...)``."""
    uncommitted = [
        f"{e.repo} ({e.lines} lines, {e.files} files, {e.untracked} untracked)" for e in data.uncommitted
    ]
    staged = [f"{e.repo} ({e.lines} lines, {e.files} files, {e.untracked} untracked)" for e in data.staged]
    pushable = [
        f"{e.repo} ({e.revs} revs, earliest: {_age(e.earliest_secs)} ago, latest: {_age(e.latest_secs)} ago)"
        for e in data.pushable
    ]

    sections = [
        f"uncommitted: {', '.join(uncommitted)}",
        f"staged: {', '.join(staged)}",
        f"pushable: {', '.join(pushable)}",
    ]
    if data.git_rewrite is not None:
        rewrite = [
            f"{e.source_repo}->{e.target_repo} (commits: {e.commits}, "
            f"earliest: {_age(e.earliest_secs)} ago, latest: {_age(e.latest_secs)} ago)"
            for e in data.git_rewrite
        ]
        sections.append(f"git_rewrite: {', '.join(rewrite)}")
    return "\n".join(sections)

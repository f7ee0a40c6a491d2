"""Pydantic models for the repo-audit report."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class UntrackedReason(str, Enum):
    """Why a repository shows up in the untracked table."""

    IGNORED = "ignored"
    MISSING_CONFIG = "missing_config"
    MISSING_REPO = "missing_repo"


class UncommittedEntry(BaseModel):
    """A repository with unstaged changes."""

    repo: str
    branch: str
    lines: int
    files: int
    untracked: int
    root_display: str
    root_full: str


class StagedEntry(BaseModel):
    """A repository with staged but uncommitted changes."""

    repo: str
    branch: str
    lines: int
    files: int
    untracked: int
    root_display: str
    root_full: str


class PushableEntry(BaseModel):
    """A local branch that is ahead of its upstream."""

    repo: str
    branch: str
    revs: int
    earliest_secs: int | None = None  # age of the oldest unpushed commit
    latest_secs: int | None = None  # age of the newest unpushed commit
    root_display: str
    root_full: str


class RepoSummary(BaseModel):
    """Per-repository state kept for reconciliation against the rewrite config."""

    repo: str
    branch: str
    path: str
    root_display: str
    root_full: str
    head_revs: int | None = None
    head_earliest_secs: int | None = None
    head_latest_secs: int | None = None


class RewriteAuditEntry(BaseModel):
    """Result of auditing one source/target pair with git_rewrite."""

    source_repo: str
    source_branch: str
    source_path: str
    target_repo: str
    target_branch: str
    target_path: str
    commits: int
    earliest_secs: int | None = None
    latest_secs: int | None = None


class UntrackedRepoEntry(BaseModel):
    """A repository missing from, ignored by, or absent for the rewrite config."""

    repo: str
    branch: str
    root_display: str
    root_full: str
    revs: int | None = None
    earliest_secs: int | None = None
    latest_secs: int | None = None
    reason: UntrackedReason


class ReportData(BaseModel):
    """Everything one scan produced, consumed read-only by presentation."""

    uncommitted: list[UncommittedEntry] = []
    staged: list[StagedEntry] = []
    pushable: list[PushableEntry] = []
    repos: list[RepoSummary] = []
    git_rewrite: list[RewriteAuditEntry] | None = None
    untracked: list[UntrackedRepoEntry] | None = None
    multi_root: bool = False


class ScanResult(BaseModel):
    """Result of a manual or scheduled scan."""

    repos_scanned: int
    scan_duration_ms: int
    errors: list[str]

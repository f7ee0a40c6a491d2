"""Cross-reference discovered repositories against the rewrite pairing config."""

from __future__ import annotations

from pathlib import Path

from models import RepoSummary, UntrackedReason, UntrackedRepoEntry
from rewrite_config import PairBuildOutput, build_pairs_with_paths, load_config


def normalize_path(path: Path | str) -> Path:
    """Canonical form of ``path``, or the path unchanged when it does not exist."""
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError):
        return Path(path)


def build_untracked_entries(repos: list[RepoSummary], build: PairBuildOutput) -> list[UntrackedRepoEntry]:
    """Report repos that are not tracked and tracked endpoints that were not found."""
    tracked = {normalize_path(endpoint.path) for endpoint in build.tracked_endpoints}
    ignored = {normalize_path(path) for path in build.ignored_paths}

    entries: list[UntrackedRepoEntry] = []
    seen: set[Path] = set()
    for repo in repos:
        repo_path = normalize_path(repo.path)
        seen.add(repo_path)
        if repo_path in tracked:
            continue
        reason = UntrackedReason.IGNORED if repo_path in ignored else UntrackedReason.MISSING_CONFIG
        entries.append(
            UntrackedRepoEntry(
                repo=repo.repo,
                branch=repo.branch,
                root_display=repo.root_display,
                root_full=repo.root_full,
                revs=repo.head_revs,
                earliest_secs=repo.head_earliest_secs,
                latest_secs=repo.head_latest_secs,
                reason=reason,
            )
        )

    recorded_missing: set[Path] = set()
    for endpoint in build.tracked_endpoints:
        endpoint_path = normalize_path(endpoint.path)
        if endpoint_path in seen or endpoint_path in recorded_missing:
            continue
        recorded_missing.add(endpoint_path)
        display = str(endpoint.path)
        entries.append(
            UntrackedRepoEntry(
                repo=display,
                branch=endpoint.branch,
                root_display=display,
                root_full=str(endpoint_path),
                reason=UntrackedReason.MISSING_REPO,
            )
        )

    entries.sort(key=lambda e: (e.root_display, e.repo, e.branch))
    return entries


def collect_untracked(config_path: Path, repos: list[RepoSummary]) -> list[UntrackedRepoEntry]:
    build = build_pairs_with_paths(load_config(config_path))
    return build_untracked_entries(repos, build)

"""Tests for the full pipeline and the plain-text summary."""

import pytest
from conftest import FixedClock, make_repo, write_config

from config import ScanOptions
from models import PushableEntry, ReportData, RewriteAuditEntry, UncommittedEntry, UntrackedReason
from report import build_report, generate_report, humanize_age
from rewrite_errors import CommandFailureError
from system import LocalFs


@pytest.mark.parametrize(
    ("secs", "expected"),
    [(0, "0.0 min"), (90, "1.5 min"), (3600, "1.0 hr"), (5400, "1.5 hr"), (86400, "1.0 days"), (129600, "1.5 days")],
)
def test_humanize_age(secs, expected) -> None:
    assert humanize_age(secs) == expected


def test_generate_report_sections() -> None:
    data = ReportData(
        uncommitted=[
            UncommittedEntry(repo="app", branch="main", lines=18, files=2, untracked=1, root_display="~", root_full="/h")
        ],
        pushable=[
            PushableEntry(repo="lib", branch="main", revs=2, earliest_secs=7200, latest_secs=None, root_display="~", root_full="/h")
        ],
    )

    assert generate_report(data) == (
        "uncommitted: app (18 lines, 2 files, 1 untracked)\n"
        "staged: \n"
        "pushable: lib (2 revs, earliest: 2.0 hr ago, latest: n/a ago)"
    )


def test_generate_report_includes_rewrite_section_when_configured() -> None:
    data = ReportData(
        git_rewrite=[
            RewriteAuditEntry(
                source_repo="src",
                source_branch="main",
                source_path="/w/src",
                target_repo="dst",
                target_branch="main",
                target_path="/w/dst",
                commits=3,
                earliest_secs=86400,
                latest_secs=60,
            )
        ]
    )

    assert generate_report(data).splitlines()[-1] == (
        "git_rewrite: src->dst (commits: 3, earliest: 1.0 days ago, latest: 1.0 min ago)"
    )


def _rewrite_setup(tmp_path):
    root = tmp_path / "root"
    source = make_repo(root / "source")
    target = make_repo(root / "target")
    make_repo(root / "loose")
    config = write_config(
        tmp_path / "rewrite.toml",
        [
            {"repository-path": str(source), "repository-branch": "main", "match-key": "p", "repo-type": "source"},
            {"repository-path": str(target), "repository-branch": "main", "match-key": "p", "repo-type": "target"},
        ],
    )
    return root, source, config


def test_build_report_without_rewrite_config(tmp_path, fake_git, fixed_now) -> None:
    make_repo(tmp_path / "only")

    data = build_report(ScanOptions(roots=[tmp_path]), fs=LocalFs(), git=fake_git, clock=FixedClock(fixed_now))

    assert [s.repo for s in data.repos] == ["only"]
    assert data.git_rewrite is None
    assert data.untracked is None


def test_build_report_merges_rewrite_and_untracked(tmp_path, fake_git, fake_runner, fixed_now) -> None:
    root, source, config = _rewrite_setup(tmp_path)
    fake_runner.respond(str(source), [{"commit_hash": "a", "dt": "01/03/24 01:00 PM"}])

    data = build_report(
        ScanOptions(roots=[root], rewrite_config=config),
        fs=LocalFs(),
        git=fake_git,
        clock=FixedClock(fixed_now),
        runner=fake_runner,
    )

    assert [(e.source_repo, e.commits, e.earliest_secs) for e in data.git_rewrite] == [("source", 1, 1800)]
    assert [(e.repo, e.reason) for e in data.untracked] == [("loose", UntrackedReason.MISSING_CONFIG)]


def test_build_report_propagates_rewrite_failure(tmp_path, fake_git, fake_runner, fixed_now) -> None:
    root, source, config = _rewrite_setup(tmp_path)
    fake_runner.respond(str(source), returncode=1, stdout=b"", stderr=b"nope")

    with pytest.raises(CommandFailureError, match="match-key p"):
        build_report(
            ScanOptions(roots=[root], rewrite_config=config),
            fs=LocalFs(),
            git=fake_git,
            clock=FixedClock(fixed_now),
            runner=fake_runner,
        )

"""git_rewrite runner — audits one source/target pair and summarizes its JSON output."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from models import RewriteAuditEntry
from rewrite_config import RepoPair
from rewrite_errors import (
    CommandFailureError,
    CommandIoError,
    PayloadJsonError,
    TimestampOutOfRangeError,
    TimestampParseError,
    UnexpectedPayloadError,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%m/%d/%y %I:%M"
NOTHING_TO_DO = "nothing to do"


@dataclass
class CommandOutput:
    returncode: int
    stdout: bytes
    stderr: bytes


class CommandRunner(Protocol):
    def run(self, argv: list[str]) -> CommandOutput: ...


class SubprocessRunner:
    """Run a command to completion, capturing raw stdout and stderr.

    Spawn failures surface as ``OSError``; there is no timeout.
    """

    def run(self, argv: list[str]) -> CommandOutput:
        result = subprocess.run(argv, capture_output=True)
        return CommandOutput(returncode=result.returncode, stdout=result.stdout, stderr=result.stderr)


def build_command(binary: Path, pair: RepoPair) -> list[str]:
    """Build the git_rewrite argv auditing the full history of one pair."""
    return [
        str(binary),
        "--source-repository-path",
        str(pair.source.path),
        "--source-repository-branch",
        pair.source.branch,
        "--target-repo",
        str(pair.target.path),
        "--target-repo-branch",
        pair.target.branch,
        "--commit-from",
        "NEXT",
        "--commit-to",
        "HEAD",
        "--mode",
        "print",
        "--output-format",
        "json",
    ]


def invoke(pair: RepoPair, binary: Path, runner: CommandRunner) -> bytes:
    """Run git_rewrite for ``pair`` and return its stdout."""
    argv = build_command(binary, pair)
    try:
        output = runner.run(argv)
    except OSError as e:
        raise CommandIoError(binary, str(e)) from e

    if output.returncode != 0:
        stderr = output.stderr.decode("utf-8", errors="replace").strip()
        raise CommandFailureError(pair.key, output.returncode, stderr)
    return output.stdout


def parse_payload(match_key: str, stdout: bytes | str) -> list[Any]:
    """Turn git_rewrite's JSON output into a list of commit records.

    Accepts either an array of records or ``{"msg": "nothing to do"}``.
    """
    try:
        parsed = json.loads(stdout)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadJsonError(match_key, str(e)) from e

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        msg = parsed.get("msg")
        if isinstance(msg, str) and msg.lower() == NOTHING_TO_DO:
            return []
    raise UnexpectedPayloadError(match_key, parsed)


def record_identity(record: Any) -> str:
    """The commit hash when present, otherwise the record's canonical JSON."""
    if isinstance(record, dict):
        commit = record.get("commit_hash")
        if isinstance(commit, str) and commit:
            return commit
    return json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def record_timestamp(record: Any) -> str | None:
    """Prefer ``original_commit_dt`` over ``dt``; blank or non-string values are skipped."""
    if not isinstance(record, dict):
        return None
    value = record["original_commit_dt"] if "original_commit_dt" in record else record.get("dt")
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_local_datetime(match_key: str, value: str) -> datetime:
    """Parse a git_rewrite timestamp as local wall-clock time.

    An ambiguous time (DST fall back) resolves to its first occurrence; a
    time inside a DST gap does not exist and is rejected.
    """
    try:
        clock, meridiem = value.rsplit(maxsplit=1)
        if meridiem.upper() not in ("AM", "PM"):
            raise ValueError(f"expected AM or PM, got {meridiem!r}")
        naive = datetime.strptime(clock, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise TimestampParseError(match_key, value, str(e)) from e
    # %p depends on LC_TIME, so the meridiem is applied by hand
    naive = naive.replace(hour=naive.hour % 12 + (12 if meridiem.upper() == "PM" else 0))

    try:
        local = datetime.fromtimestamp(naive.timestamp()).astimezone()
    except (OverflowError, OSError, ValueError) as e:
        raise TimestampOutOfRangeError(match_key, value) from e
    if local.replace(tzinfo=None) != naive:
        raise TimestampOutOfRangeError(match_key, value)
    return local


def summarize_records(match_key: str, records: list[Any]) -> tuple[int, list[datetime]]:
    """Count unique commits and collect their parsed timestamps."""
    unique_commits: set[str] = set()
    timestamps: list[datetime] = []
    for record in records:
        unique_commits.add(record_identity(record))
        value = record_timestamp(record)
        if value is not None:
            timestamps.append(parse_local_datetime(match_key, value))
    return len(unique_commits), timestamps


def age_seconds(now: datetime, other: datetime) -> int:
    return max(int((now - other).total_seconds()), 0)


def compute_bounds(timestamps: list[datetime], now: datetime) -> tuple[int | None, int | None]:
    """Ages of the (earliest, latest) timestamps relative to ``now``."""
    if not timestamps:
        return None, None
    return age_seconds(now, min(timestamps)), age_seconds(now, max(timestamps))


def repo_display_name(path: Path) -> str:
    return path.name or str(path)


def run_pair(pair: RepoPair, binary: Path, now: datetime, runner: CommandRunner) -> RewriteAuditEntry:
    """Audit one pair end to end."""
    stdout = invoke(pair, binary, runner)
    records = parse_payload(pair.key, stdout)
    commits, timestamps = summarize_records(pair.key, records)
    earliest, latest = compute_bounds(timestamps, now)
    logger.debug("match-key %s: %d commits", pair.key, commits)

    return RewriteAuditEntry(
        source_repo=repo_display_name(pair.source.path),
        source_branch=pair.source.branch,
        source_path=str(pair.source.path),
        target_repo=repo_display_name(pair.target.path),
        target_branch=pair.target.branch,
        target_path=str(pair.target.path),
        commits=commits,
        earliest_secs=earliest,
        latest_secs=latest,
    )

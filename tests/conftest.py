"""Shared fakes: scripted git and git_rewrite runners, a fixed clock, repo fixtures."""

from __future__ import annotations

import json
import threading
import time
from datetime import datetime
from pathlib import Path

import pytest

from git_state import GitOutput
from rewrite_client import CommandOutput, parse_local_datetime


class FakeGitRunner:
    """Answers git invocations from a script keyed by (repo name, args)."""

    def __init__(self, script: dict[tuple[str, tuple[str, ...]], tuple[int, str]] | None = None) -> None:
        self.script = script or {}
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.broken: set[str] = set()

    def add(self, repo: str, args: list[str], stdout: str = "", returncode: int = 0) -> None:
        self.script[(repo, tuple(args))] = (returncode, stdout)

    def run_git(self, repo: Path, args: list[str]) -> GitOutput | None:
        self.calls.append((repo.name, tuple(args)))
        if repo.name in self.broken:
            return None
        returncode, stdout = self.script.get((repo.name, tuple(args)), (0, ""))
        return GitOutput(returncode=returncode, stdout=stdout)


class FakeCommandRunner:
    """Answers git_rewrite invocations keyed by the source path argument."""

    def __init__(self) -> None:
        self.responses: dict[str, tuple[int, bytes, bytes, float]] = {}
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def respond(
        self,
        source_path: str,
        payload: object = None,
        *,
        returncode: int = 0,
        stdout: bytes | None = None,
        stderr: bytes = b"",
        delay: float = 0.0,
    ) -> None:
        body = stdout if stdout is not None else json.dumps(payload).encode()
        self.responses[source_path] = (returncode, body, stderr, delay)

    def run(self, argv: list[str]) -> CommandOutput:
        with self._lock:
            self.calls.append(argv)
        source = argv[argv.index("--source-repository-path") + 1]
        returncode, stdout, stderr, delay = self.responses[source]
        if delay:
            time.sleep(delay)
        return CommandOutput(returncode=returncode, stdout=stdout, stderr=stderr)


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


@pytest.fixture
def fixed_now() -> datetime:
    return parse_local_datetime("test", "01/03/24 01:30 PM")


@pytest.fixture
def fake_git() -> FakeGitRunner:
    return FakeGitRunner()


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


def make_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


def write_config(path: Path, entries: list[dict[str, object]]) -> Path:
    """Write a rewrite config with one ``[[repo]]`` table per entry."""
    blocks = []
    for entry in entries:
        lines = ["[[repo]]"]
        for key, value in entry.items():
            lines.append(f"{key} = {json.dumps(value)}")
        blocks.append("\n".join(lines))
    path.write_text("\n\n".join(blocks) + "\n", encoding="utf-8")
    return path

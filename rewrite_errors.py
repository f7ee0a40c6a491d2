"""Errors raised while loading the rewrite config or running git_rewrite.

Every error here is fatal to the whole rewrite audit: the executor stops at
the first one and returns no partial results.
"""

from __future__ import annotations

from pathlib import Path


class RewriteAuditError(Exception):
    """Base class for all rewrite-audit failures."""


class ConfigReadError(RewriteAuditError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to read git rewrite config {path}: {reason}")


class ConfigParseError(RewriteAuditError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to parse git rewrite config {path}: {reason}")


class InvalidConfigError(RewriteAuditError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"invalid git rewrite config: {message}")


class CommandIoError(RewriteAuditError):
    def __init__(self, binary: Path, reason: str) -> None:
        self.binary = binary
        self.reason = reason
        super().__init__(f"failed to launch git_rewrite binary {binary}: {reason}")


class CommandFailureError(RewriteAuditError):
    """git_rewrite exited non-zero for one pair."""

    def __init__(self, match_key: str, status: int, stderr: str) -> None:
        self.match_key = match_key
        self.status = status
        self.stderr = stderr
        message = f"git_rewrite invocation for match-key {match_key} failed with status {status}"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)


class PayloadJsonError(RewriteAuditError):
    def __init__(self, match_key: str, reason: str) -> None:
        self.match_key = match_key
        self.reason = reason
        super().__init__(f"failed to parse git_rewrite output for match-key {match_key}: {reason}")


class UnexpectedPayloadError(RewriteAuditError):
    def __init__(self, match_key: str, value: object) -> None:
        self.match_key = match_key
        self.value = value
        super().__init__(f"unexpected git_rewrite output for match-key {match_key}: {value!r}")


class TimestampParseError(RewriteAuditError):
    def __init__(self, match_key: str, value: str, reason: str) -> None:
        self.match_key = match_key
        self.value = value
        super().__init__(f"failed to parse git_rewrite dt '{value}' for match-key {match_key}: {reason}")


class TimestampOutOfRangeError(RewriteAuditError):
    """The timestamp falls in a local-time gap, e.g. a DST jump forward."""

    def __init__(self, match_key: str, value: str) -> None:
        self.match_key = match_key
        self.value = value
        super().__init__(
            f"git_rewrite dt '{value}' for match-key {match_key} did not map to a local timestamp"
        )


class WorkerPoolError(RewriteAuditError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"failed to start git_rewrite worker pool: {reason}")

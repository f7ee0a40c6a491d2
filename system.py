"""Filesystem and clock seams injected into the scan pipeline."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Protocol


class FsOps(Protocol):
    def is_repo(self, directory: Path) -> bool: ...

    def expand_tilde(self, path: Path) -> Path: ...


class LocalFs:
    """Real filesystem probing."""

    def is_repo(self, directory: Path) -> bool:
        marker = directory / ".git"
        return marker.is_dir() and not marker.is_symlink()

    def expand_tilde(self, path: Path) -> Path:
        """Expand a leading ``~`` using $HOME, leaving other paths untouched."""
        home = os.environ.get("HOME")
        if not home or not path.parts or path.parts[0] != "~":
            return path
        return Path(home).joinpath(*path.parts[1:])


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning an aware local datetime."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

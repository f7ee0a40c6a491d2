"""Live per-worker progress lines for the rewrite audit, rendered with rich."""

from __future__ import annotations

import threading
import time

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn


class Indicator:
    """One worker's line on the board: a label and its elapsed time."""

    def __init__(self, board: ProgressBoard, task_id: TaskID, label: str) -> None:
        self._board = board
        self._task_id = task_id
        self.label = label
        self.started = time.monotonic()
        self.ticks = 0
        self.finished = False

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def tick(self) -> None:
        self.ticks += 1
        self._board.update(self._task_id, f"{self.label} {self.elapsed:.1f}s")

    def finish(self) -> None:
        self.ticks += 1
        self.finished = True
        self._board.update(self._task_id, f"{self.label} done in {self.elapsed:.1f}s", completed=1)


class ProgressBoard:
    """Thread-safe, append-only registry of indicators shared by all workers."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self._lock = threading.Lock()
        self._indicators: list[Indicator] = []
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console or Console(stderr=True),
            disable=not enabled,
        )

    def __enter__(self) -> ProgressBoard:
        self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    @property
    def indicators(self) -> list[Indicator]:
        with self._lock:
            return list(self._indicators)

    def add(self, label: str) -> Indicator:
        with self._lock:
            task_id = self._progress.add_task(label, total=1)
            indicator = Indicator(self, task_id, label)
            self._indicators.append(indicator)
        return indicator

    def update(self, task_id: TaskID, description: str, completed: int | None = None) -> None:
        self._progress.update(task_id, description=description, completed=completed)

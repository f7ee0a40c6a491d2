"""Parallel rewrite audit — runs git_rewrite for every configured pair on a worker pool."""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path

from models import RewriteAuditEntry
from progress import Indicator, ProgressBoard
from rewrite_client import CommandRunner, SubprocessRunner, repo_display_name, run_pair
from rewrite_config import RepoPair, build_pairs, load_config
from rewrite_errors import WorkerPoolError

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 0.2


def _tick(indicator: Indicator, stop: threading.Event) -> None:
    while not stop.wait(TICK_INTERVAL_SECONDS):
        indicator.tick()
    indicator.finish()


def _pair_label(pair: RepoPair) -> str:
    return f"{repo_display_name(pair.source.path)} -> {repo_display_name(pair.target.path)}"


def run_pair_with_progress(
    pair: RepoPair,
    binary: Path,
    now: datetime,
    runner: CommandRunner,
    board: ProgressBoard,
) -> RewriteAuditEntry:
    """Run one pair while a ticker thread keeps its progress line alive.

    The ticker is always stopped and joined before this returns or raises.
    """
    indicator = board.add(_pair_label(pair))
    stop = threading.Event()
    ticker = threading.Thread(target=_tick, args=(indicator, stop), name=f"ticker-{pair.key}", daemon=True)
    ticker.start()
    try:
        return run_pair(pair, binary, now, runner)
    finally:
        stop.set()
        ticker.join()


def _default_workers() -> int:
    return os.cpu_count() or 1


def collect_entries(
    pairs: list[RepoPair],
    binary: Path,
    now: datetime,
    *,
    runner: CommandRunner | None = None,
    board: ProgressBoard | None = None,
    max_workers: int | None = None,
) -> list[RewriteAuditEntry]:
    """Audit all pairs concurrently and return entries sorted by (source, target).

    The first failure from any worker is raised and every other result is
    discarded. Pairs not yet started are cancelled; pairs already running
    are left to finish in the background.
    """
    if not pairs:
        return []

    runner = runner or SubprocessRunner()
    board = board or ProgressBoard(enabled=False)
    workers = max_workers if max_workers is not None else _default_workers()

    try:
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="git-rewrite")
    except (ValueError, RuntimeError) as e:
        raise WorkerPoolError(str(e)) from e

    logger.info("Auditing %d rewrite pairs on %d workers", len(pairs), workers)
    start = time.monotonic()
    results: list[RewriteAuditEntry | None] = [None] * len(pairs)
    with board:
        futures: dict[Future[RewriteAuditEntry], int] = {
            pool.submit(run_pair_with_progress, pair, binary, now, runner, board): index
            for index, pair in enumerate(pairs)
        }
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)

    # submission order breaks ties between pairs sharing repo names
    entries = [entry for entry in results if entry is not None]
    entries.sort(key=lambda e: (e.source_repo, e.target_repo))
    logger.info("Rewrite audit finished in %.1fs", time.monotonic() - start)
    return entries


def collect_rewrite_entries(
    config_path: Path,
    binary: Path,
    now: datetime,
    *,
    runner: CommandRunner | None = None,
    board: ProgressBoard | None = None,
    max_workers: int | None = None,
) -> list[RewriteAuditEntry]:
    """Load the pairing config and audit every pair against the same ``now``."""
    pairs = build_pairs(load_config(config_path))
    return collect_entries(pairs, binary, now, runner=runner, board=board, max_workers=max_workers)

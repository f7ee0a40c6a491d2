"""FastAPI app for repo-audit — serves the latest git state and rewrite-audit report."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from rich.logging import RichHandler

from config import get_options, get_scan_interval
from models import ReportData, RepoSummary, RewriteAuditEntry, ScanResult, UntrackedRepoEntry
from report import build_report, generate_report
from rewrite_errors import RewriteAuditError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging, initial scan, optional polling. Shutdown: cancel polling."""
    options = get_options()
    logging.basicConfig(
        level=logging.DEBUG if options.debug else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger.info("Running initial scan...")
    await asyncio.to_thread(_run_scan)
    logger.info("Initial scan complete: %d repos", len(_report.repos))

    task = None
    interval = get_scan_interval()
    if interval > 0:
        task = asyncio.create_task(_background_scanner(interval))
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Repo Audit",
    description="Uncommitted, unpushed and rewritten commits across many repos",
    version="0.1.0",
    lifespan=lifespan,
)

# In-memory state
_report: ReportData = ReportData()
_last_scan: str = ""
_scan_errors: list[str] = []


def _run_scan() -> None:
    """Build a fresh report; on a rewrite-audit failure keep serving the previous one."""
    global _report, _last_scan, _scan_errors

    try:
        _report = build_report(get_options())
    except RewriteAuditError as e:
        logger.error("Scan failed: %s", e)
        _scan_errors = [str(e)]
        return

    _scan_errors = []
    _last_scan = datetime.now().isoformat()


async def _background_scanner(interval: int) -> None:
    """Re-scan all repos every ``interval`` seconds."""
    while True:
        await asyncio.sleep(interval)
        await asyncio.to_thread(_run_scan)


# --- API Endpoints ---


@app.get("/api/report", response_model=ReportData)
async def get_report():
    """Return the full report."""
    return _report


@app.get("/api/repos", response_model=list[RepoSummary])
async def list_repos():
    """Return the summary of every discovered repo."""
    return _report.repos


@app.get("/api/rewrite", response_model=list[RewriteAuditEntry])
async def list_rewrite():
    """Return rewrite-audit results for every configured pair."""
    if _report.git_rewrite is None:
        raise HTTPException(status_code=404, detail="Rewrite audit is not configured")
    return _report.git_rewrite


@app.get("/api/untracked", response_model=list[UntrackedRepoEntry])
async def list_untracked():
    """Return repos missing from, or ignored by, the rewrite config."""
    if _report.untracked is None:
        raise HTTPException(status_code=404, detail="Rewrite audit is not configured")
    return _report.untracked


@app.post("/api/scan", response_model=ScanResult)
async def force_scan():
    """Trigger an immediate rescan."""
    start = time.monotonic()
    await asyncio.to_thread(_run_scan)
    duration_ms = int((time.monotonic() - start) * 1000)
    return ScanResult(
        repos_scanned=len(_report.repos),
        scan_duration_ms=duration_ms,
        errors=_scan_errors,
    )


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "ok" if not _scan_errors else "degraded",
        "repos": len(_report.repos),
        "last_scan": _last_scan,
        "errors": _scan_errors,
    }


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Serve the plain-text summary."""
    return generate_report(_report)

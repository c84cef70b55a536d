"""
Pipedrive Daily Digest: API Server
=====================================

Hosts the daily digest scheduler and a small control surface.

Route groups:
  /api/health              - Health check, next scheduled run
  /api/digest/send         - Run and email the digest now
  /api/digest/preview      - Build the digest without sending (HTML or JSON)
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse

from scripts.digest.render import generate_html_report
from scripts.digest_scheduler import next_run_time, start_scheduler, stop_scheduler
from scripts.generate_daily_digest import run_daily_digest
from scripts.lib.config import load_settings
from scripts.lib.errors import ConfigError, DigestError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

SERVICE_NAME = "Pipedrive Daily Digest"
VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting %s...", SERVICE_NAME)
    settings = load_settings()
    app.state.settings = settings

    logger.info("Pipedrive: %s", "configured" if settings.crm_configured else "not configured")
    logger.info("Email: %s", "configured" if settings.email_configured else "not configured")

    start_scheduler(settings, lambda: run_daily_digest(settings))

    logger.info("%s ready", SERVICE_NAME)
    yield
    stop_scheduler()
    logger.info("Shutting down %s...", SERVICE_NAME)


# ─── App Setup ────────────────────────────────────────────────

app = FastAPI(
    title=SERVICE_NAME,
    version=VERSION,
    description="Daily per-team-member Pipedrive activity report by email",
    lifespan=lifespan,
)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
def health():
    """Health check with configuration and schedule status."""
    settings = app.state.settings
    upcoming = next_run_time()
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "timezone": settings.timezone,
        "next_run": upcoming.isoformat() if upcoming else None,
        "integrations": {
            "pipedrive": settings.crm_configured,
            "email": settings.email_configured,
        },
    }


# ─── Digest ───────────────────────────────────────────────────

@app.post("/api/digest/send", tags=["digest"])
def send_digest():
    """Run the digest for yesterday and email it now."""
    settings = app.state.settings
    try:
        report = run_daily_digest(settings, send=True)
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except DigestError as e:
        logger.error("Manual digest run failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "status": "sent",
        "report_date": report.report_date.isoformat(),
        "recipients": len(settings.recipients),
        "totals": report.totals.model_dump(),
        "degraded_sources": report.degraded_sources,
    }


@app.get("/api/digest/preview", tags=["digest"])
def preview_digest(
    day: Optional[date] = Query(None, alias="date"),
    fmt: str = Query("html", alias="format", pattern="^(html|json)$"),
):
    """Build the digest without sending it."""
    settings = app.state.settings
    try:
        report = run_daily_digest(settings, target_date=day, send=False)
        if fmt == "json":
            return JSONResponse(content=report.model_dump(mode="json"))
        return HTMLResponse(content=generate_html_report(report))
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except DigestError as e:
        logger.error("Digest preview failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

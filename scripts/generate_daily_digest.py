"""
Daily Digest Generator
========================
Fetches yesterday's Pipedrive activity, aggregates it per team member and
emails the HTML report.

A run either produces a complete report or fails as a whole. Deals,
activities and users are required; notes and pipelines are optional and
degrade to empty collections (the report lists them under
``degraded_sources``).

Outputs (preview copies, overwritten each run):
    - data/processed/daily_digest.json   (structured data)
    - reports/DAILY_DIGEST.html          (the email body)

Usage:
    python scripts/generate_daily_digest.py
    python scripts/generate_daily_digest.py --date 2026-10-16
    python scripts/generate_daily_digest.py --send
    python scripts/generate_daily_digest.py --json-only --output-dir reports/archive
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from integrations.mailer import SMTPMailer
from integrations.pipedrive import PipedriveClient
from models.digest_models import DigestReport
from scripts.digest.aggregator import aggregate_by_owner
from scripts.digest.movements import derive_movements
from scripts.digest.notes import enrich_notes
from scripts.digest.render import email_subject, generate_html_report
from scripts.digest.report import assemble_report
from scripts.digest.selection import (
    index_by_id,
    record_key,
    scope_deals,
    select_calls,
    select_completed_activities,
    select_lost_deals,
    select_won_deals,
)
from scripts.digest.window import ReportWindow, day_window, yesterday_window
from scripts.lib.config import DigestSettings, load_settings
from scripts.lib.errors import (
    APIError,
    DataFetchError,
    DigestError,
    PipelineStepError,
    SourceUnavailableError,
)
from scripts.lib.logger import setup_logger

logger = setup_logger("generate_daily_digest")

PROCESSED_DIR = BASE_DIR / "data" / "processed"
DEFAULT_OUTPUT_DIR = BASE_DIR / "reports"

FETCH_ERRORS = (APIError, DataFetchError)


@dataclass
class DigestInputs:
    """Everything fetched from the CRM for one run."""

    deals: List[dict] = field(default_factory=list)
    activities: List[dict] = field(default_factory=list)
    users: List[dict] = field(default_factory=list)
    notes: List[dict] = field(default_factory=list)
    pipelines: List[dict] = field(default_factory=list)
    pipeline_id: Optional[int] = None
    degraded_sources: List[str] = field(default_factory=list)


# ============================================================================
# Fetch
# ============================================================================

def _fetch_required(name: str, fetch, *args, **kwargs) -> List[dict]:
    try:
        return fetch(*args, **kwargs)
    except FETCH_ERRORS as exc:
        logger.error("Required source '%s' failed: %s", name, exc)
        raise SourceUnavailableError(name, cause=exc)


def _fetch_optional(name: str, inputs: DigestInputs, fetch, *args, **kwargs) -> List[dict]:
    try:
        return fetch(*args, **kwargs)
    except FETCH_ERRORS as exc:
        logger.warning("Optional source '%s' failed, continuing without it: %s", name, exc)
        inputs.degraded_sources.append(name)
        return []


def fetch_digest_inputs(client: PipedriveClient, window: ReportWindow,
                        pipeline_id: Optional[int] = None) -> DigestInputs:
    """
    Fetch the CRM collections for one window.

    Raises:
        SourceUnavailableError: If deals, activities or users cannot be fetched.
    """
    inputs = DigestInputs(pipeline_id=pipeline_id)

    inputs.deals = _fetch_required("deals", client.fetch_deals, pipeline_id=pipeline_id)
    inputs.activities = _fetch_required(
        "activities", client.fetch_activities, window.start_date, window.end_date,
    )
    inputs.users = _fetch_required("users", client.fetch_users)
    # Note add_time is UTC; enrich_notes applies the exact window later
    inputs.notes = _fetch_optional(
        "notes", inputs, client.fetch_notes, window.utc_start_date, window.utc_end_date,
    )
    inputs.pipelines = _fetch_optional("pipelines", inputs, client.fetch_pipelines)

    logger.info(
        "Fetched %d deals, %d activities, %d notes, %d users, %d pipelines",
        len(inputs.deals), len(inputs.activities), len(inputs.notes),
        len(inputs.users), len(inputs.pipelines),
    )
    return inputs


# ============================================================================
# Build
# ============================================================================

def build_daily_digest(inputs: DigestInputs, window: ReportWindow,
                       generated_at: Optional[datetime] = None) -> DigestReport:
    """Turn fetched collections into the report for ``window``."""
    degraded = list(inputs.degraded_sources)
    scoped = inputs.pipeline_id is not None

    deals = scope_deals(inputs.deals, inputs.pipeline_id)
    deals_by_id = index_by_id(deals)

    activities = inputs.activities
    if scoped:
        activities = [a for a in activities if record_key(a.get("deal_id")) in deals_by_id]

    won = select_won_deals(deals, window)
    lost = select_lost_deals(deals, window)
    completed = select_completed_activities(activities, window)
    calls = select_calls(activities, deals_by_id)
    notes = enrich_notes(inputs.notes, deals_by_id, window, pipeline_scoped=scoped)

    try:
        movements = derive_movements(deals, window, inputs.pipelines)
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("Deal movement derivation failed, reporting zero: %s", exc)
        movements = []
        degraded.append("movements")

    owner_stats = aggregate_by_owner(
        calls=calls,
        notes=notes,
        movements=movements,
        completed_activities=completed,
        won_deals=won,
        lost_deals=lost,
        users=inputs.users,
    )

    report = assemble_report(
        report_date=window.report_date,
        calls=calls,
        notes=notes,
        movements=movements,
        completed_activities=completed,
        won_deals=won,
        lost_deals=lost,
        owner_stats=owner_stats,
        window=window,
        degraded_sources=degraded,
        generated_at=generated_at,
    )
    logger.info(
        "Built digest for %s: %d owners, totals %s",
        report.date_label, len(report.by_owner), report.totals.model_dump(),
    )
    return report


# ============================================================================
# Run
# ============================================================================

def report_window(settings: DigestSettings, target_date: Optional[date] = None,
                  now: Optional[datetime] = None) -> ReportWindow:
    if target_date is not None:
        return day_window(target_date, settings.timezone)
    return yesterday_window(now=now, tz=settings.timezone)


def run_daily_digest(
    settings: DigestSettings,
    client: Optional[PipedriveClient] = None,
    mailer: Optional[SMTPMailer] = None,
    target_date: Optional[date] = None,
    send: bool = True,
    now: Optional[datetime] = None,
) -> DigestReport:
    """
    One end-to-end run: fetch, build and (optionally) email the report.

    Nothing is sent unless the report was fully assembled and rendered.

    Raises:
        ConfigError: If the CRM (or, when sending, email) is not configured.
        SourceUnavailableError: If a required CRM source failed.
        PipelineStepError: If rendering failed.
        EmailDeliveryError: If the SMTP exchange failed.
    """
    window = report_window(settings, target_date=target_date, now=now)
    logger.info("Daily digest run for %s (%s)", window.start_date, settings.timezone)

    if client is None:
        client = PipedriveClient.from_settings(settings)
    if send:
        settings.require_email()
        if mailer is None:
            mailer = SMTPMailer.from_settings(settings)

    inputs = fetch_digest_inputs(client, window, pipeline_id=settings.pipedrive_pipeline_id)
    report = build_daily_digest(inputs, window)

    if not send:
        return report

    try:
        html_body = generate_html_report(report)
    except (TypeError, ValueError, KeyError) as exc:
        raise PipelineStepError("render", cause=exc)

    mailer.send_html(email_subject(report), html_body, settings.recipients)
    logger.info("Daily digest for %s sent to %d recipient(s)",
                report.date_label, len(settings.recipients))
    return report


# ============================================================================
# File output
# ============================================================================

def _write_json(report: DigestReport, output_dir: Path = PROCESSED_DIR) -> Path:
    """Write the report JSON file."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "daily_digest.json"

    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report.model_dump(mode="json"), fh, indent=2, ensure_ascii=False)
    logger.info("JSON digest written to %s", json_path)
    return json_path


def _write_html(report: DigestReport, output_dir: Path) -> Path:
    """Write the report HTML preview."""
    output_dir.mkdir(parents=True, exist_ok=True)
    html_path = output_dir / "DAILY_DIGEST.html"

    try:
        html_content = generate_html_report(report)
    except (TypeError, ValueError, KeyError) as exc:
        raise PipelineStepError("render", cause=exc)
    with open(html_path, "w", encoding="utf-8") as fh:
        fh.write(html_content)
    logger.info("HTML report written to %s", html_path)
    return html_path


# ============================================================================
# CLI
# ============================================================================

def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got '{value}'")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate the daily Pipedrive activity digest",
    )
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Report on this local day (YYYY-MM-DD). Default: yesterday",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Output directory for the HTML report. Default: {DEFAULT_OUTPUT_DIR}",
    )
    parser.add_argument(
        "--json-only",
        action="store_true",
        help="Only generate the JSON output; skip HTML report",
    )
    parser.add_argument(
        "--send",
        action="store_true",
        help="Email the report to the configured recipients",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = _parse_args(argv)
    output_dir = Path(args.output_dir)

    logger.info("Daily digest generator starting")
    logger.info("  Date: %s", args.date or "yesterday")
    logger.info("  Output dir: %s", output_dir)
    logger.info("  JSON only: %s", args.json_only)
    logger.info("  Send: %s", args.send)

    settings = load_settings()
    report = run_daily_digest(settings, target_date=args.date, send=args.send)

    json_path = _write_json(report)
    html_path = None
    if not args.json_only:
        html_path = _write_html(report, output_dir)

    logger.info("=== Daily Digest Complete ===")
    logger.info("  Day: %s", report.date_label)
    logger.info("  Team members: %d", len(report.by_owner))
    if report.degraded_sources:
        logger.info("  Degraded: %s", ", ".join(report.degraded_sources))
    logger.info("  JSON: %s", json_path)
    if html_path:
        logger.info("  HTML: %s", html_path)


if __name__ == "__main__":
    try:
        main()
    except DigestError as exc:
        logger.error("Daily digest failed: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logger.error("Daily digest failed: %s", exc, exc_info=True)
        sys.exit(1)

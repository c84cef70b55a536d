"""
Report assembly: package one day's aggregate into the DigestReport shape.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from models.digest_models import (
    DigestDetails,
    DigestReport,
    DigestTotals,
    EnrichedNote,
    Movement,
    OwnerStat,
)
from scripts.digest.window import ReportWindow


def format_date_label(day: date) -> str:
    """Long-form label, e.g. 'Thursday, October 16, 2026'."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def assemble_report(
    report_date: date,
    calls: Sequence[dict],
    notes: Sequence[EnrichedNote],
    movements: Sequence[Movement],
    completed_activities: Sequence[dict],
    won_deals: Sequence[dict],
    lost_deals: Sequence[dict],
    owner_stats: Sequence[OwnerStat],
    window: Optional[ReportWindow] = None,
    degraded_sources: Optional[List[str]] = None,
    generated_at: Optional[datetime] = None,
) -> DigestReport:
    """
    Build the report for a single day.

    Totals are the raw collection sizes rather than sums over owner_stats,
    so records nobody owns still show up in the team numbers.
    """
    totals = DigestTotals(
        calls_made=len(calls),
        notes_created=len(notes),
        deal_movements=len(movements),
        activities_done=len(completed_activities),
        deals_won=len(won_deals),
        deals_lost=len(lost_deals),
    )
    details = DigestDetails(
        won_deals=list(won_deals),
        lost_deals=list(lost_deals),
        calls=list(calls),
        notes=list(notes),
        movements=list(movements),
    )
    return DigestReport(
        report_date=report_date,
        date_label=format_date_label(report_date),
        window_start=window.start if window else None,
        window_end=window.end if window else None,
        totals=totals,
        by_owner=list(owner_stats),
        details=details,
        degraded_sources=list(degraded_sources or []),
        generated_at=generated_at or datetime.now(timezone.utc),
    )

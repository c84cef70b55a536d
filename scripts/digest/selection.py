"""
Record selection: turns fetched CRM records into the aggregator's inputs.

All helpers are pure; annotated records are shallow copies so the fetched
payloads are never mutated.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from scripts.digest.classifier import is_call
from scripts.digest.window import ReportWindow


def record_key(value: Any) -> Any:
    """Lookup key for a record id; ``"17"`` and ``17`` address the same deal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def index_by_id(records: Iterable[Mapping[str, Any]]) -> Dict[Any, Mapping[str, Any]]:
    """Map record id -> record; records without an id are skipped."""
    index: Dict[Any, Mapping[str, Any]] = {}
    for record in records or []:
        rid = record.get("id")
        if rid is None:
            continue
        index[record_key(rid)] = record
    return index


def lookup(index: Mapping[Any, Mapping[str, Any]], record_id: Any) -> Optional[Mapping[str, Any]]:
    if record_id is None:
        return None
    return index.get(record_key(record_id))


def scope_deals(deals: List[dict], pipeline_id: Any = None) -> List[dict]:
    """Keep only deals of one pipeline when a scope is given."""
    if pipeline_id is None:
        return list(deals)
    wanted = record_key(pipeline_id)
    return [d for d in deals if record_key(d.get("pipeline_id")) == wanted]


def select_won_deals(deals: Iterable[dict], window: ReportWindow) -> List[dict]:
    """Deals with status 'won' whose won_time falls inside the window."""
    return [
        d for d in deals
        if d.get("status") == "won" and window.contains(d.get("won_time"))
    ]


def select_lost_deals(deals: Iterable[dict], window: ReportWindow) -> List[dict]:
    """Deals with status 'lost' whose lost_time falls inside the window."""
    return [
        d for d in deals
        if d.get("status") == "lost" and window.contains(d.get("lost_time"))
    ]


def select_completed_activities(activities: Iterable[dict], window: ReportWindow) -> List[dict]:
    """Activities marked done, with the completion time inside the window."""
    return [
        a for a in activities
        if a.get("done") and window.contains(a.get("marked_as_done_time"))
    ]


def select_calls(
    activities: Iterable[dict],
    deals_by_id: Optional[Mapping[Any, Mapping[str, Any]]] = None,
) -> List[dict]:
    """Call activities, each copied with the title of its deal (or None)."""
    deals_by_id = deals_by_id or {}
    calls = []
    for activity in activities:
        if not is_call(activity):
            continue
        deal = lookup(deals_by_id, activity.get("deal_id"))
        annotated = dict(activity)
        annotated["deal_title"] = deal.get("title") if deal else None
        calls.append(annotated)
    return calls

"""
Deal movements: one synthetic event per deal updated inside the window.

Pipedrive has no cheap change log for a whole day, so any update counts;
stage changes are not told apart from other edits.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from models.digest_models import Movement
from scripts.digest.identity import parse_owner_ref
from scripts.digest.selection import record_key
from scripts.digest.window import ReportWindow

UNKNOWN_PIPELINE = "Unknown Pipeline"


def pipeline_names(pipelines: Iterable[Mapping[str, Any]]) -> Dict[Any, str]:
    names: Dict[Any, str] = {}
    for pipeline in pipelines or []:
        pid = pipeline.get("id")
        if pid is not None and pipeline.get("name"):
            names[record_key(pid)] = pipeline["name"]
    return names


def derive_movements(
    deals: Iterable[Mapping[str, Any]],
    window: ReportWindow,
    pipelines: Iterable[Mapping[str, Any]],
) -> List[Movement]:
    """Emit a Movement for every deal whose update_time is inside the window."""
    names = pipeline_names(pipelines)
    movements = []
    for deal in deals:
        if not window.contains(deal.get("update_time")):
            continue
        pipeline_id = deal.get("pipeline_id")
        movements.append(Movement(
            id=f"deal_update_{deal.get('id')}",
            deal_id=deal.get("id"),
            deal_title=deal.get("title") or "",
            owner=parse_owner_ref(deal.get("user_id")),
            change_date=deal.get("update_time"),
            pipeline_id=pipeline_id,
            pipeline_name=names.get(record_key(pipeline_id), UNKNOWN_PIPELINE),
        ))
    return movements

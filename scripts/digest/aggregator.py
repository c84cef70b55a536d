"""
Per-owner aggregation of one day's CRM activity.

Every record is attributed to at most one owner through normalize_owner(),
so a user referenced as ``42`` in one place and ``{"id": 42, ...}`` in
another lands in a single OwnerStat. Records without a resolvable owner
still count in the report totals, just not in any owner's row.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.digest_models import OwnerId, OwnerStat
from scripts.digest.identity import embedded_name, normalize_owner, resolve_name

# Pipedrive keeps the assignee of activities and the owner of deals here
OWNER_FIELD = "user_id"


def record_owner(record: Any) -> Any:
    """Owner reference of a raw CRM dict or a derived note/movement."""
    if isinstance(record, Mapping):
        return record.get(OWNER_FIELD)
    return getattr(record, "owner", None)


def _sources(
    calls: Sequence[Any],
    notes: Sequence[Any],
    movements: Sequence[Any],
    completed_activities: Sequence[Any],
    won_deals: Sequence[Any],
    lost_deals: Sequence[Any],
) -> Tuple[Tuple[str, Sequence[Any]], ...]:
    return (
        ("calls_made", calls),
        ("notes_created", notes),
        ("deal_movements", movements),
        ("activities_done", completed_activities),
        ("deals_won", won_deals),
        ("deals_lost", lost_deals),
    )


def aggregate_by_owner(
    calls: Sequence[Any],
    notes: Sequence[Any],
    movements: Sequence[Any],
    completed_activities: Sequence[Any],
    won_deals: Sequence[Any],
    lost_deals: Sequence[Any],
    users: Iterable[dict],
    owner_of: Callable[[Any], Any] = record_owner,
) -> List[OwnerStat]:
    """
    Build one OwnerStat per owner with at least one qualifying event.

    Args:
        calls: Call activities.
        notes: Enriched notes (attributed to the deal owner).
        movements: Deal movements.
        completed_activities: Activities completed inside the window.
        won_deals: Deals won inside the window.
        lost_deals: Deals lost inside the window.
        users: CRM users, used for display names.
        owner_of: Extracts the owner reference from a record.

    Returns:
        OwnerStat list sorted by total activity, highest first. Owners
        with equal totals keep the order in which they were first seen.
    """
    sources = _sources(
        calls, notes, movements, completed_activities, won_deals, lost_deals,
    )
    users = list(users or [])

    # Pass 1: distinct owners in encounter order, plus any embedded names
    seen: Dict[OwnerId, Optional[str]] = {}
    for _, records in sources:
        for record in records:
            ref = owner_of(record)
            owner_id = normalize_owner(ref)
            if owner_id is None:
                continue
            name = embedded_name(ref)
            if owner_id not in seen or (seen[owner_id] is None and name):
                seen[owner_id] = name

    stats: Dict[OwnerId, OwnerStat] = {
        owner_id: OwnerStat(
            owner_id=owner_id,
            name=resolve_name(owner_id, users, default=name),
        )
        for owner_id, name in seen.items()
    }

    # Pass 2: one increment per record, on exactly one owner
    for field, records in sources:
        for record in records:
            owner_id = normalize_owner(owner_of(record))
            stat = stats.get(owner_id) if owner_id is not None else None
            if stat is not None:
                setattr(stat, field, getattr(stat, field) + 1)

    active = [s for s in stats.values() if s.total > 0]
    return sorted(active, key=lambda s: s.total, reverse=True)

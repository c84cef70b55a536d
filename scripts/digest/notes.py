"""
Note enrichment: join notes to their parent deal.

A note on a deal counts toward the deal owner's day, not the literal note
author, because it is work done on that owner's deal.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from models.digest_models import EnrichedNote
from scripts.digest.identity import parse_owner_ref
from scripts.digest.selection import lookup
from scripts.digest.window import ReportWindow

NO_DEAL_TITLE = "No Deal Associated"
DEFAULT_NOTE_CONTENT = "Note added"


def enrich_note(
    note: Mapping[str, Any],
    deals_by_id: Mapping[Any, Mapping[str, Any]],
    pipeline_scoped: bool = False,
) -> Optional[EnrichedNote]:
    """
    Attach deal title and attribution owner to a note.

    Returns None when the note points at a deal missing from ``deals_by_id``,
    or when it has no deal at all while the run is scoped to one pipeline.
    """
    author = parse_owner_ref(note.get("user_id"))
    content = note.get("content") or DEFAULT_NOTE_CONTENT
    deal_id = note.get("deal_id")

    if not deal_id:
        if pipeline_scoped:
            return None
        return EnrichedNote(
            id=note.get("id"),
            content=content,
            deal_id=None,
            deal_title=NO_DEAL_TITLE,
            owner=author,
            author=author,
            add_time=note.get("add_time"),
        )

    deal = lookup(deals_by_id, deal_id)
    if deal is None:
        return None

    # Deals without an owner fall back to the note author
    owner = parse_owner_ref(deal.get("user_id")) or author
    return EnrichedNote(
        id=note.get("id"),
        content=content,
        deal_id=deal.get("id", deal_id),
        deal_title=deal.get("title") or NO_DEAL_TITLE,
        owner=owner,
        author=author,
        add_time=note.get("add_time"),
    )


def enrich_notes(
    notes: Iterable[Mapping[str, Any]],
    deals_by_id: Mapping[Any, Mapping[str, Any]],
    window: ReportWindow,
    pipeline_scoped: bool = False,
) -> List[EnrichedNote]:
    """Enrich every note added inside the window, dropping unresolvable ones."""
    enriched = []
    for note in notes:
        if not window.contains(note.get("add_time")):
            continue
        result = enrich_note(note, deals_by_id, pipeline_scoped=pipeline_scoped)
        if result is not None:
            enriched.append(result)
    return enriched

"""
Daily Digest: Pydantic Models
================================

Owner references, derived digest records (enriched notes, deal movements),
per-owner statistics and the report handed to the HTML/email layer.
CRM records themselves stay plain dicts as returned by the API.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

OwnerId = Union[int, str]


# ─── Owner References ───────────────────────────────────────

class RawOwner(BaseModel):
    """Owner given as a bare user id."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["raw"] = "raw"
    id: OwnerId


class EmbeddedOwner(BaseModel):
    """Owner given as an embedded user object carrying its id and name."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["embedded"] = "embedded"
    id: OwnerId
    name: Optional[str] = None
    email: Optional[str] = None


OwnerRef = Annotated[Union[RawOwner, EmbeddedOwner], Field(discriminator="kind")]


# ─── Derived Records ────────────────────────────────────────

class EnrichedNote(BaseModel):
    """A note joined to its parent deal, attributed to the deal owner."""
    model_config = ConfigDict(frozen=True)

    id: Any
    content: str = "Note added"
    deal_id: Optional[Any] = None
    deal_title: str = "No Deal Associated"
    owner: Optional[OwnerRef] = None
    author: Optional[OwnerRef] = None
    add_time: Optional[str] = None


class Movement(BaseModel):
    """Synthetic event for a deal updated inside the report window."""
    model_config = ConfigDict(frozen=True)

    id: str
    deal_id: Any
    deal_title: str = ""
    owner: Optional[OwnerRef] = None
    change_description: str = "Deal updated"
    change_date: Optional[str] = None
    pipeline_id: Optional[Any] = None
    pipeline_name: str = "Unknown Pipeline"


# ─── Aggregates ─────────────────────────────────────────────

COUNTER_FIELDS = (
    "calls_made",
    "notes_created",
    "deal_movements",
    "activities_done",
    "deals_won",
    "deals_lost",
)


class OwnerStat(BaseModel):
    """Per-owner activity counts for the report day."""
    owner_id: OwnerId
    name: str
    calls_made: int = 0
    notes_created: int = 0
    deal_movements: int = 0
    activities_done: int = 0
    deals_won: int = 0
    deals_lost: int = 0

    @property
    def total(self) -> int:
        return sum(getattr(self, f) for f in COUNTER_FIELDS)


class DigestTotals(BaseModel):
    """Team-wide counts, including records with no resolvable owner."""
    calls_made: int = 0
    notes_created: int = 0
    deal_movements: int = 0
    activities_done: int = 0
    deals_won: int = 0
    deals_lost: int = 0


class DigestDetails(BaseModel):
    """Raw record lists shown under the summary."""
    won_deals: List[Dict[str, Any]] = Field(default_factory=list)
    lost_deals: List[Dict[str, Any]] = Field(default_factory=list)
    calls: List[Dict[str, Any]] = Field(default_factory=list)
    notes: List[EnrichedNote] = Field(default_factory=list)
    movements: List[Movement] = Field(default_factory=list)


class DigestReport(BaseModel):
    """Everything the templating layer needs for one day's email."""
    report_date: date
    date_label: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    totals: DigestTotals = Field(default_factory=DigestTotals)
    by_owner: List[OwnerStat] = Field(default_factory=list)
    details: DigestDetails = Field(default_factory=DigestDetails)
    degraded_sources: List[str] = Field(default_factory=list)
    generated_at: Optional[datetime] = None

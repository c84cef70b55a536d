"""Tests for record selection, note enrichment and deal movements."""

from models.digest_models import EmbeddedOwner, RawOwner
from scripts.digest.movements import derive_movements, pipeline_names
from scripts.digest.notes import enrich_note, enrich_notes
from scripts.digest.selection import (
    index_by_id,
    lookup,
    scope_deals,
    select_calls,
    select_completed_activities,
    select_lost_deals,
    select_won_deals,
)

IN_DAY = "2026-10-16 14:00:00"
DAY_BEFORE = "2026-10-15 14:00:00"

DEALS = [
    {"id": 1, "title": "Acme renewal", "status": "won", "won_time": IN_DAY,
     "update_time": IN_DAY, "pipeline_id": 1, "user_id": {"id": 5, "name": "Ann"}},
    {"id": 2, "title": "Globex", "status": "won", "won_time": DAY_BEFORE,
     "update_time": DAY_BEFORE, "pipeline_id": 1, "user_id": 7},
    {"id": 3, "title": "Initech", "status": "lost", "lost_time": IN_DAY,
     "update_time": IN_DAY, "pipeline_id": 2, "user_id": 7},
    {"id": 4, "title": "Hooli", "status": "open", "won_time": IN_DAY,
     "update_time": None, "pipeline_id": 2, "user_id": None},
]


class TestIndexing:
    def test_index_and_lookup_accept_string_ids(self):
        index = index_by_id(DEALS + [{"title": "no id"}])
        assert len(index) == 4
        assert lookup(index, "3")["title"] == "Initech"
        assert lookup(index, 3)["title"] == "Initech"
        assert lookup(index, None) is None

    def test_scope_deals(self):
        assert [d["id"] for d in scope_deals(DEALS, 2)] == [3, 4]
        assert len(scope_deals(DEALS, None)) == 4


class TestDealOutcomes:
    def test_won_requires_status_and_time(self, window):
        assert [d["id"] for d in select_won_deals(DEALS, window)] == [1]

    def test_lost(self, window):
        assert [d["id"] for d in select_lost_deals(DEALS, window)] == [3]


class TestActivities:
    def test_completed_needs_done_and_time_in_window(self, window):
        activities = [
            {"id": 1, "done": True, "marked_as_done_time": IN_DAY},
            {"id": 2, "done": True, "marked_as_done_time": DAY_BEFORE},
            {"id": 3, "done": False, "marked_as_done_time": IN_DAY},
            {"id": 4, "done": True},
        ]
        assert [a["id"] for a in select_completed_activities(activities, window)] == [1]

    def test_calls_annotated_with_deal_title(self):
        activities = [
            {"id": 10, "type": "call", "deal_id": 1},
            {"id": 11, "subject": "Incoming Call", "deal_id": 99},
            {"id": 12, "type": "email", "subject": "Proposal"},
        ]
        calls = select_calls(activities, index_by_id(DEALS))
        assert [c["id"] for c in calls] == [10, 11]
        assert calls[0]["deal_title"] == "Acme renewal"
        assert calls[1]["deal_title"] is None
        assert "deal_title" not in activities[0]


class TestNotes:
    def test_attributed_to_deal_owner(self):
        note = {"id": 9, "deal_id": 1, "user_id": 7, "content": "Sent pricing", "add_time": IN_DAY}
        enriched = enrich_note(note, index_by_id(DEALS))
        assert enriched.owner == EmbeddedOwner(id=5, name="Ann")
        assert enriched.author == RawOwner(id=7)
        assert enriched.deal_title == "Acme renewal"

    def test_ownerless_deal_falls_back_to_author(self):
        note = {"id": 9, "deal_id": 4, "user_id": 7, "add_time": IN_DAY}
        enriched = enrich_note(note, index_by_id(DEALS))
        assert enriched.owner == RawOwner(id=7)
        assert enriched.content == "Note added"

    def test_note_without_deal(self):
        note = {"id": 9, "user_id": 7, "add_time": IN_DAY}
        enriched = enrich_note(note, index_by_id(DEALS))
        assert enriched.deal_title == "No Deal Associated"
        assert enriched.owner == RawOwner(id=7)
        assert enrich_note(note, index_by_id(DEALS), pipeline_scoped=True) is None

    def test_unknown_deal_dropped(self):
        note = {"id": 9, "deal_id": 404, "user_id": 7, "add_time": IN_DAY}
        assert enrich_note(note, index_by_id(DEALS)) is None

    def test_enrich_notes_filters_by_add_time(self, window):
        notes = [
            {"id": 1, "deal_id": 1, "add_time": IN_DAY},
            {"id": 2, "deal_id": 1, "add_time": DAY_BEFORE},
            {"id": 3, "deal_id": 404, "add_time": IN_DAY},
        ]
        assert [n.id for n in enrich_notes(notes, index_by_id(DEALS), window)] == [1]


class TestMovements:
    def test_one_movement_per_updated_deal(self, window):
        pipelines = [{"id": "1", "name": "Sales"}]
        movements = derive_movements(DEALS, window, pipelines)
        assert [m.id for m in movements] == ["deal_update_1", "deal_update_3"]
        assert movements[0].pipeline_name == "Sales"
        assert movements[0].change_description == "Deal updated"
        assert movements[0].owner == EmbeddedOwner(id=5, name="Ann")
        assert movements[1].pipeline_name == "Unknown Pipeline"

    def test_pipeline_names_skip_incomplete(self):
        assert pipeline_names([{"id": 1, "name": "Sales"}, {"id": 2}, {"name": "x"}]) == {1: "Sales"}

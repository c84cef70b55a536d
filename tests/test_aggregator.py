"""Tests for per-owner aggregation."""

from models.digest_models import (
    COUNTER_FIELDS,
    EmbeddedOwner,
    EnrichedNote,
    Movement,
    RawOwner,
)
from scripts.digest.aggregator import aggregate_by_owner, record_owner
from scripts.digest.identity import normalize_owner


def _aggregate(users=(), **collections):
    args = {
        "calls": [],
        "notes": [],
        "movements": [],
        "completed_activities": [],
        "won_deals": [],
        "lost_deals": [],
    }
    args.update(collections)
    return aggregate_by_owner(users=list(users), **args)


class TestRecordOwner:
    def test_dict_and_model_records(self):
        assert record_owner({"user_id": 5}) == 5
        note = EnrichedNote(id=1, owner=RawOwner(id=5))
        assert record_owner(note) == RawOwner(id=5)
        assert record_owner(object()) is None


class TestAggregateByOwner:
    def test_empty_input(self):
        assert aggregate_by_owner([], [], [], [], [], [], []) == []

    def test_raw_and_embedded_ids_merge(self):
        stats = _aggregate(
            calls=[{"user_id": 42}],
            won_deals=[{"user_id": {"id": 42, "name": "X"}}],
        )
        assert len(stats) == 1
        assert stats[0].owner_id == 42
        assert stats[0].name == "X"
        assert stats[0].calls_made == 1
        assert stats[0].deals_won == 1

    def test_users_list_name_preferred(self, users):
        stats = _aggregate(users=users, calls=[{"user_id": {"id": 5, "name": "Annie"}}])
        assert stats[0].name == "Ann Lee"

    def test_unknown_owner_label(self):
        stats = _aggregate(calls=[{"user_id": 99}])
        assert stats[0].name == "Unknown User (99)"

    def test_ordering_by_total(self):
        stats = _aggregate(
            calls=[{"user_id": 1}] * 3,
            completed_activities=[{"user_id": 2}] * 7,
        )
        assert [s.owner_id for s in stats] == [2, 1]
        assert [s.total for s in stats] == [7, 3]

    def test_ties_keep_encounter_order(self):
        stats = _aggregate(calls=[{"user_id": 8}, {"user_id": 3}])
        assert [s.owner_id for s in stats] == [8, 3]

    def test_conservation(self):
        collections = {
            "calls": [{"user_id": 1}, {"user_id": None}, {"user_id": {"id": 2}}],
            "notes": [EnrichedNote(id=1, owner=RawOwner(id=2)), EnrichedNote(id=2)],
            "movements": [Movement(id="deal_update_1", deal_id=1, owner=RawOwner(id=1))],
            "completed_activities": [{"user_id": 1}, {}],
            "won_deals": [{"user_id": {"id": 3, "name": "C"}}],
            "lost_deals": [{"user_id": True}],
        }
        stats = _aggregate(**collections)
        sources = dict(zip(COUNTER_FIELDS, (
            collections["calls"],
            collections["notes"],
            collections["movements"],
            collections["completed_activities"],
            collections["won_deals"],
            collections["lost_deals"],
        )))
        for field, records in sources.items():
            owned = sum(1 for r in records if normalize_owner(record_owner(r)) is not None)
            assert sum(getattr(s, field) for s in stats) == owned

    def test_scenario_deal_update_and_note(self):
        owner = EmbeddedOwner(id=5, name="Ann")
        movement = Movement(id="deal_update_1", deal_id=1, owner=owner)
        note = EnrichedNote(id=9, deal_id=1, owner=owner)
        stats = _aggregate(movements=[movement], notes=[note])
        assert len(stats) == 1
        stat = stats[0]
        assert stat.owner_id == 5
        assert stat.name == "Ann"
        assert stat.deal_movements == 1
        assert stat.notes_created == 1
        assert stat.calls_made == stat.activities_done == stat.deals_won == stat.deals_lost == 0

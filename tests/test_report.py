"""Tests for report assembly and HTML rendering."""

from datetime import date, datetime, timezone

from models.digest_models import EmbeddedOwner, EnrichedNote, Movement, OwnerStat
from scripts.digest.render import email_subject, generate_html_report
from scripts.digest.report import assemble_report, format_date_label


def _empty_report(**overrides):
    args = dict(
        report_date=date(2026, 10, 16),
        calls=[],
        notes=[],
        movements=[],
        completed_activities=[],
        won_deals=[],
        lost_deals=[],
        owner_stats=[],
        generated_at=datetime(2026, 10, 17, 12, 30, tzinfo=timezone.utc),
    )
    args.update(overrides)
    return assemble_report(**args)


def _busy_report():
    ann = EmbeddedOwner(id=5, name="Ann")
    return _empty_report(
        calls=[{"id": 10, "subject": "Incoming Call", "user_id": 5, "deal_title": "Acme"}],
        notes=[EnrichedNote(id=9, deal_id=1, deal_title="Acme",
                            content="<p>Sent <b>pricing</b></p>", owner=ann)],
        movements=[Movement(id="deal_update_1", deal_id=1, deal_title="Acme",
                            owner=ann, pipeline_name="Sales")],
        won_deals=[{"id": 1, "title": "<script>alert(1)</script>", "value": 1200,
                    "currency": "CAD", "user_id": {"id": 5, "name": "Ann"}}],
        lost_deals=[{"id": 3, "title": "Initech", "lost_reason": "Budget", "user_id": 7}],
        owner_stats=[
            OwnerStat(owner_id=5, name="Ann Lee", calls_made=1, notes_created=1,
                      deal_movements=1, deals_won=1),
            OwnerStat(owner_id=7, name="Bo Chen", deals_lost=1),
        ],
    )


class TestAssembleReport:
    def test_empty_inputs(self):
        report = _empty_report()
        assert report.by_owner == []
        assert report.totals.model_dump() == {
            "calls_made": 0,
            "notes_created": 0,
            "deal_movements": 0,
            "activities_done": 0,
            "deals_won": 0,
            "deals_lost": 0,
        }
        assert report.degraded_sources == []

    def test_totals_count_unowned_records(self):
        report = _empty_report(calls=[{"user_id": None}, {"user_id": 5}])
        assert report.totals.calls_made == 2

    def test_date_label(self):
        assert format_date_label(date(2026, 10, 16)) == "Friday, October 16, 2026"
        assert _empty_report().date_label == "Friday, October 16, 2026"

    def test_window_bounds_recorded(self, window):
        report = _empty_report(window=window)
        assert report.window_start == window.start
        assert report.window_end == window.end


class TestRender:
    def test_subject(self):
        assert email_subject(_empty_report()) == "Daily Analytics Report - Friday, October 16, 2026"

    def test_empty_report_renders(self):
        html = generate_html_report(_empty_report())
        assert "Friday, October 16, 2026" in html
        assert "Performance by Team Member" not in html
        assert "Partial data" not in html
        assert "0 phone calls" in html

    def test_owner_rows_and_details(self):
        html = generate_html_report(_busy_report())
        assert "Performance by Team Member" in html
        assert html.index("Ann Lee") < html.index("Bo Chen")
        assert "Deals Won" in html
        assert "Deals Lost" in html
        assert "Budget" in html
        assert "Sent pricing" in html
        assert "1,200.00 CAD" in html

    def test_values_are_escaped(self):
        html = generate_html_report(_busy_report())
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_degraded_notice(self):
        html = generate_html_report(_empty_report(degraded_sources=["notes"]))
        assert "Partial data" in html
        assert "notes" in html

"""Tests for the API server."""

from datetime import date
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from dashboard.api.main import app
from scripts.digest.report import assemble_report
from scripts.lib.errors import ConfigError, SourceUnavailableError


def _report():
    return assemble_report(
        report_date=date(2026, 10, 16),
        calls=[{"user_id": 5}],
        notes=[],
        movements=[],
        completed_activities=[],
        won_deals=[],
        lost_deals=[],
        owner_stats=[],
    )


@pytest.fixture
def client(settings):
    with patch("dashboard.api.main.load_settings", return_value=settings):
        with TestClient(app) as test_client:
            yield test_client


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "Pipedrive Daily Digest"
        assert data["timezone"] == "America/Toronto"
        assert data["next_run"] is None
        assert data["integrations"] == {"pipedrive": True, "email": True}


class TestDigestEndpoints:
    @patch("dashboard.api.main.run_daily_digest")
    def test_send(self, mock_run, client, settings):
        mock_run.return_value = _report()
        resp = client.post("/api/digest/send")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "sent"
        assert data["report_date"] == "2026-10-16"
        assert data["totals"]["calls_made"] == 1
        mock_run.assert_called_once_with(settings, send=True)

    @patch("dashboard.api.main.run_daily_digest")
    def test_send_failure(self, mock_run, client):
        mock_run.side_effect = SourceUnavailableError("deals")
        resp = client.post("/api/digest/send")
        assert resp.status_code == 500
        assert "deals" in resp.json()["detail"]

    @patch("dashboard.api.main.run_daily_digest")
    def test_send_not_configured(self, mock_run, client):
        mock_run.side_effect = ConfigError("Email delivery is not configured")
        resp = client.post("/api/digest/send")
        assert resp.status_code == 503

    @patch("dashboard.api.main.run_daily_digest")
    def test_preview_html(self, mock_run, client):
        mock_run.return_value = _report()
        resp = client.get("/api/digest/preview")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "Daily Analytics Report" in resp.text
        assert mock_run.call_args[1]["send"] is False

    @patch("dashboard.api.main.run_daily_digest")
    def test_preview_json_for_date(self, mock_run, client):
        mock_run.return_value = _report()
        resp = client.get("/api/digest/preview", params={"format": "json", "date": "2026-10-16"})
        assert resp.status_code == 200
        assert resp.json()["date_label"] == "Friday, October 16, 2026"
        assert mock_run.call_args[1]["target_date"] == date(2026, 10, 16)

    @patch("dashboard.api.main.run_daily_digest")
    def test_preview_explicit_html_format(self, mock_run, client):
        mock_run.return_value = _report()
        resp = client.get("/api/digest/preview", params={"format": "html"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")

    def test_preview_rejects_unknown_format(self, client):
        resp = client.get("/api/digest/preview", params={"format": "pdf"})
        assert resp.status_code == 422

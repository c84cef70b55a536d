"""Shared fixtures for the daily digest tests."""

import os

# Keep test runs off the log directory and the real scheduler
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from datetime import date

import pytest

from scripts.digest.window import day_window
from scripts.lib.config import DigestSettings

TZ = "America/Toronto"
REPORT_DAY = date(2026, 10, 16)


@pytest.fixture
def window():
    return day_window(REPORT_DAY, TZ)


@pytest.fixture
def settings():
    return DigestSettings(
        pipedrive_api_token="test-token",
        email_user="digest@example.com",
        email_password="app-password",
        recipients=["owner@example.com"],
        timezone=TZ,
        enable_scheduler=False,
        request_interval=0,
    )


@pytest.fixture
def users():
    return [
        {"id": 5, "name": "Ann Lee", "email": "ann@example.com"},
        {"id": 7, "name": "Bo Chen", "email": "bo@example.com"},
    ]

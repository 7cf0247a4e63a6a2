"""
Shared fixtures for the bonus tracker test suite.

Everything runs without network access: the Teamwork client and the rate
store are replaced by small in-memory fakes, HTTP sessions by mocks.
"""

from datetime import date, datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from bonus_tracker.config import Settings
from bonus_tracker.models import RateTable, TimeEntry
from bonus_tracker.rate_store import validate_rate_update

TZ = ZoneInfo("Europe/Madrid")


# ---------------------------------------------------------------------------
# Settings / clock
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(
        teamwork_api_token="tw-token",
        teamwork_domain="example.teamwork.com",
        github_token="gh-token",
        slack_webhook_url="https://hooks.slack.test/main",
        slack_test_webhook_url="https://hooks.slack.test/test",
        dashboard_url="https://dash.example.com",
        identity_url="https://dash.example.com/.netlify/identity",
        org_email_domain="example.com",
        contractors=("Julian Stoddart",),
        scheduler_enabled=False,
        http_timeout_seconds=2.0,
    )


@pytest.fixture
def now():
    """Thursday 12 Feb 2026, 10:00 Madrid. This week starts Mon 9 Feb."""
    return datetime(2026, 2, 12, 10, 0, tzinfo=TZ)


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------

@pytest.fixture
def make_raw():
    """Factory for raw Teamwork time-entry dicts."""

    def _make(first="Ana", last="Rodriguez", project="SchoolFix",
              day="2026-02-10T00:00:00Z", hours="1", minutes="0", billable="1"):
        return {
            "person-first-name": first,
            "person-last-name": last,
            "project-name": project,
            "date": day,
            "hours": hours,
            "minutes": minutes,
            "isbillable": billable,
        }

    return _make


@pytest.fixture
def entry():
    """Factory for normalized TimeEntry objects."""

    def _make(user="Ana Rodriguez", project="SchoolFix", day=date(2026, 2, 10),
              hours=1.0, billable=True):
        return TimeEntry(user=user, project=project, date=day, hours=hours, billable=billable)

    return _make


@pytest.fixture
def rates():
    return RateTable(rates={"SchoolFix": 160, "Inyo Pools": 140}, global_rate=155)


# ---------------------------------------------------------------------------
# Fakes for the two upstream sources
# ---------------------------------------------------------------------------

class FakeTeamwork:
    def __init__(self, entries=None, error=None, skipped=0):
        self.entries = list(entries or [])
        self.error = error
        self.skipped = skipped
        self.calls = []

    def fetch_entries(self, start, end):
        self.calls.append((start, end))
        if self.error:
            raise self.error
        return list(self.entries), self.skipped


class FakeRateStore:
    def __init__(self, table=None, error=None):
        self.table = table or RateTable()
        self.error = error
        self.updates = []

    def fetch_rates(self):
        if self.error:
            raise self.error
        return self.table

    def update_rate(self, project_id, rate):
        project_id, rate = validate_rate_update(project_id, rate)
        self.updates.append((project_id, rate))
        self.table.rates[project_id] = rate
        return dict(self.table.rates)


@pytest.fixture
def fake_teamwork():
    return FakeTeamwork


@pytest.fixture
def fake_rate_store():
    return FakeRateStore


@pytest.fixture
def mock_response():
    """Factory for requests.Response-like mocks."""

    def _make(status=200, json_data=None, text=""):
        resp = MagicMock()
        resp.status_code = status
        resp.ok = 200 <= status < 300
        resp.text = text
        if isinstance(json_data, Exception):
            resp.json.side_effect = json_data
        else:
            resp.json.return_value = json_data
        return resp

    return _make

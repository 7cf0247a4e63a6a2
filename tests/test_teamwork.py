from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from bonus_tracker.errors import SourceUnavailableError
from bonus_tracker.teamwork import TeamworkClient


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def client(settings, session):
    settings.page_size = 2
    settings.max_pages = 3
    return TeamworkClient(settings, session=session)


def page(make_raw, n):
    return {"time-entries": [make_raw() for _ in range(n)]}


def test_stops_on_short_page(client, session, mock_response, make_raw):
    session.get.side_effect = [
        mock_response(json_data=page(make_raw, 2)),
        mock_response(json_data=page(make_raw, 1)),
    ]
    entries, skipped = client.fetch_entries(date(2025, 12, 29), date(2026, 2, 13))

    assert len(entries) == 3
    assert skipped == 0
    assert session.get.call_count == 2
    params = session.get.call_args_list[0].kwargs["params"]
    assert params["page"] == 1
    assert params["pageSize"] == 2
    assert params["fromDate"] == "20251229"
    assert params["toDate"] == "20260213"
    assert session.get.call_args_list[1].kwargs["params"]["page"] == 2


def test_empty_first_page(client, session, mock_response):
    session.get.return_value = mock_response(json_data={"time-entries": []})
    assert client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1)) == ([], 0)
    assert session.get.call_count == 1


def test_page_ceiling_stops_runaway_loop(client, session, mock_response, make_raw):
    session.get.return_value = mock_response(json_data=page(make_raw, 2))
    entries, _ = client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))
    assert session.get.call_count == 3
    assert len(entries) == 6


def test_uses_basic_auth_and_timeout(client, session, mock_response):
    session.get.return_value = mock_response(json_data={"time-entries": []})
    client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))
    assert session.auth == ("tw-token", "xxx")
    url = session.get.call_args.args[0]
    assert url == "https://example.teamwork.com/time_entries.json"
    assert session.get.call_args.kwargs["timeout"] == 2.0


def test_non_2xx_is_fatal(client, session, mock_response):
    session.get.return_value = mock_response(status=503, text="maintenance")
    with pytest.raises(SourceUnavailableError) as exc:
        client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))
    assert exc.value.upstream_status == 503
    assert "maintenance" in str(exc.value)


def test_failure_on_later_page_is_fatal(client, session, mock_response, make_raw):
    session.get.side_effect = [
        mock_response(json_data=page(make_raw, 2)),
        mock_response(status=500, text="boom"),
    ]
    with pytest.raises(SourceUnavailableError):
        client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))


def test_timeout_is_fatal(client, session):
    session.get.side_effect = requests.Timeout()
    with pytest.raises(SourceUnavailableError, match="timed out"):
        client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))


def test_malformed_rows_are_skipped_not_fatal(client, session, mock_response, make_raw):
    client.page_size = 10  # one short page ends the loop
    session.get.return_value = mock_response(
        json_data={"time-entries": [make_raw(), make_raw(day=None)]}
    )
    entries, skipped = client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))
    assert len(entries) == 1
    assert skipped == 1
    assert session.get.call_count == 1


def test_skip_count_is_returned_per_call(client, session, mock_response, make_raw):
    session.get.side_effect = [
        mock_response(json_data={"time-entries": [make_raw(), make_raw(day="garbage")]}),
        mock_response(json_data={"time-entries": []}),
        mock_response(json_data={"time-entries": [make_raw()]}),
    ]
    first_entries, first_skipped = client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))
    second_entries, second_skipped = client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))

    assert (len(first_entries), first_skipped) == (1, 1)
    assert (len(second_entries), second_skipped) == (1, 0)
    assert not hasattr(client, "skipped")


@pytest.mark.parametrize("payload", [[], None, "time-entries", 42])
def test_non_object_payload_is_fatal(client, session, mock_response, payload):
    session.get.return_value = mock_response(json_data=payload)
    with pytest.raises(SourceUnavailableError, match="unexpected payload"):
        client.fetch_entries(date(2026, 1, 1), date(2026, 2, 1))

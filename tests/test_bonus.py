from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from bonus_tracker.bonus import (
    BONUS_TIERS,
    Mode,
    build_leaderboard,
    calculate_stats,
    determine_mode,
    get_mode_details,
    get_pool,
    get_tier_label,
    next_tier,
    project_revenue,
)
from bonus_tracker.errors import ValidationError
from bonus_tracker.models import (
    AggregateBucket,
    Aggregates,
    BehindDetails,
    CloseDetails,
    OnTrackDetails,
    ReportStats,
    UserTotal,
)
from bonus_tracker.periods import report_windows

TZ = ZoneInfo("Europe/Madrid")


def make_stats(projected=0.0, **overrides):
    values = dict(
        current_revenue=projected / 2,
        projected_revenue=projected,
        current_work_day=10,
        total_work_days=20,
        days_remaining=10,
        total_billable_hours=100.0,
        global_rate=155,
        leaderboard=[],
        active_members=5,
        date=datetime(2026, 2, 13, 18, 0, tzinfo=TZ),
    )
    values.update(overrides)
    return ReportStats(**values)


def make_aggregates(revenue=0.0, billable=0.0, users=(), today=date(2026, 2, 13)):
    return Aggregates(
        monthly=AggregateBucket(total_hours=billable, billable_hours=billable, revenue=revenue),
        this_week=AggregateBucket(),
        last_week=AggregateBucket(),
        per_user=list(users),
        per_project=[],
        windows=report_windows(today),
    )


# -------------------------------------------------
# Classification
# -------------------------------------------------
@pytest.mark.parametrize(
    "projected,expected",
    [
        (85000, Mode.ON_TRACK),
        (84999.99, Mode.CLOSE),
        (68000, Mode.CLOSE),
        (67999.99, Mode.BEHIND),
        (0, Mode.BEHIND),
        (250000, Mode.ON_TRACK),
    ],
)
def test_mode_boundaries(projected, expected):
    assert determine_mode(projected) is expected


def test_mode_values_are_colors():
    assert [m.value for m in Mode] == ["green", "yellow", "red"]


@pytest.mark.parametrize("value", [None, "auto", "AUTO", ""])
def test_parse_auto_means_no_override(value):
    assert Mode.parse(value) is None


def test_parse_forced_modes():
    assert Mode.parse("green") is Mode.ON_TRACK
    assert Mode.parse("Yellow") is Mode.CLOSE
    assert Mode.parse("red") is Mode.BEHIND


def test_parse_rejects_unknown_mode():
    with pytest.raises(ValidationError):
        Mode.parse("purple")


# -------------------------------------------------
# Tiers
# -------------------------------------------------
def test_tier_table_is_descending():
    thresholds = [t.revenue_threshold for t in BONUS_TIERS]
    assert thresholds == sorted(thresholds, reverse=True)


@pytest.mark.parametrize(
    "revenue,pool,label",
    [
        (170000, 6000, "Top Tier"),
        (160000, 6000, "Top Tier"),
        (150000, 5000, "Tier 5"),
        (100000, 2000, "Tier 2"),
        (85000, 1000, "Tier 1"),
        (84999, 0, "Baseline"),
    ],
)
def test_pool_and_label(revenue, pool, label):
    assert get_pool(revenue) == pool
    assert get_tier_label(revenue) == label


def test_next_tier():
    assert next_tier(90000).label == "Tier 2"
    assert next_tier(159999).label == "Top Tier"
    assert next_tier(160000) is None


# -------------------------------------------------
# Projection
# -------------------------------------------------
def test_projection_scenario_close_with_5000_gap():
    projected = project_revenue(40000, 10, 20)
    assert projected == pytest.approx(80000)
    assert determine_mode(projected) is Mode.CLOSE

    details = get_mode_details(Mode.CLOSE, make_stats(projected))
    assert details.gap == pytest.approx(5000)


def test_projection_with_zero_day_is_zero():
    assert project_revenue(40000, 0, 20) == 0.0


def test_calculate_stats_end_to_end_scenario():
    # Fri 13 Feb 2026 after 17:00 is working day 10 of 20
    now = datetime(2026, 2, 13, 18, 0, tzinfo=TZ)
    stats = calculate_stats(make_aggregates(revenue=40000, billable=250), now)
    assert stats.current_work_day == 10
    assert stats.total_work_days == 20
    assert stats.days_remaining == 10
    assert stats.projected_revenue == pytest.approx(80000)
    assert stats.total_billable_hours == pytest.approx(250)


def test_calculate_stats_floors_day_without_dividing_by_zero():
    now = datetime(2026, 2, 2, 9, 0, tzinfo=TZ)
    stats = calculate_stats(make_aggregates(revenue=1000, today=now.date()), now)
    assert stats.current_work_day == 1
    assert stats.projected_revenue == pytest.approx(1000 * 20)


# -------------------------------------------------
# Mode details
# -------------------------------------------------
def test_on_track_top_tier_scenario():
    details = get_mode_details(Mode.ON_TRACK, make_stats(170000))
    assert isinstance(details, OnTrackDetails)
    assert details.tier_label == "Top Tier"
    assert details.pool == 6000
    assert details.is_top_tier is True
    assert details.next_tier_pool is None
    assert details.gap_to_next_tier == 0


def test_on_track_reports_gap_to_next_tier():
    details = get_mode_details(Mode.ON_TRACK, make_stats(92000))
    assert details.tier_label == "Tier 1"
    assert details.pool == 1000
    assert details.next_tier_pool == 2000
    assert details.gap_to_next_tier == pytest.approx(8000)


def test_close_details_hours_per_person():
    stats = make_stats(69000, active_members=4, days_remaining=8, global_rate=160)
    details = get_mode_details(Mode.CLOSE, stats)
    assert isinstance(details, CloseDetails)
    assert details.gap == pytest.approx(16000)
    assert details.additional_hours == pytest.approx(100)
    assert details.hours_per_person_per_day == pytest.approx(100 / 4 / 8)


@pytest.mark.parametrize("members,days", [(0, 5), (5, 0), (0, 0)])
def test_close_details_guard_zero_divisors(members, days):
    details = get_mode_details(
        Mode.CLOSE, make_stats(70000, active_members=members, days_remaining=days)
    )
    assert details.hours_per_person_per_day == 0


def test_behind_details_are_empty():
    assert get_mode_details(Mode.BEHIND, make_stats(10000)) == BehindDetails()


def test_forced_green_on_low_numbers_uses_real_stats():
    details = get_mode_details(Mode.ON_TRACK, make_stats(50000))
    assert details.pool == 0
    assert details.tier_label == "Baseline"
    assert details.next_tier_pool == 1000
    assert details.gap_to_next_tier == pytest.approx(35000)


# -------------------------------------------------
# Leaderboard
# -------------------------------------------------
def test_leaderboard_shares_sum_to_100():
    users = [UserTotal("A", 30), UserTotal("B", 50), UserTotal("C", 20)]
    board = build_leaderboard(users)
    assert [e.name for e in board] == ["B", "A", "C"]
    assert sum(e.share_percent for e in board) == pytest.approx(100)
    assert board[0].share_percent == pytest.approx(50)


def test_leaderboard_shares_zero_when_no_hours():
    board = build_leaderboard([UserTotal("A", 0), UserTotal("B", 0)])
    assert [e.share_percent for e in board] == [0, 0]


def test_leaderboard_excludes_contractors_but_they_stay_active():
    users = [
        UserTotal("Julian Stoddart", 60, contractor=True),
        UserTotal("Ana", 30),
        UserTotal("Sara", 10),
    ]
    now = datetime(2026, 2, 13, 18, 0, tzinfo=TZ)
    stats = calculate_stats(make_aggregates(users=users), now)
    assert [e.name for e in stats.leaderboard] == ["Ana", "Sara"]
    assert stats.leaderboard[0].share_percent == pytest.approx(75)
    assert stats.active_members == 3

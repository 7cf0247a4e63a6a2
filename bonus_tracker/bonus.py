"""
Bonus model: month-end projection, tier lookup and message mode.

    green  (ON_TRACK): projected >= $85k, a bonus pool is unlocked
    yellow (CLOSE):    projected >= $68k (80% of $85k), within reach
    red    (BEHIND):   below that, no bonus framing

Thresholds are business constants and intentionally not configurable.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from bonus_tracker.errors import ValidationError
from bonus_tracker.models import (
    Aggregates,
    BehindDetails,
    BonusTier,
    CloseDetails,
    LeaderboardEntry,
    ModeDetails,
    OnTrackDetails,
    ReportStats,
    UserTotal,
)
from bonus_tracker.periods import current_working_day, total_working_days

BONUS_THRESHOLD = 85000
CLOSE_THRESHOLD = BONUS_THRESHOLD * 0.8  # $68,000

BONUS_TIERS: List[BonusTier] = [
    BonusTier(160000, 6000, "Top Tier"),
    BonusTier(145000, 5000, "Tier 5"),
    BonusTier(130000, 4000, "Tier 4"),
    BonusTier(115000, 3000, "Tier 3"),
    BonusTier(100000, 2000, "Tier 2"),
    BonusTier(85000, 1000, "Tier 1"),
]
TOP_TIER_THRESHOLD = BONUS_TIERS[0].revenue_threshold


class Mode(str, Enum):
    ON_TRACK = "green"
    CLOSE = "yellow"
    BEHIND = "red"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Mode"]:
        """
        "auto" (or nothing) -> None, meaning classify from the numbers.
        Anything else must be green / yellow / red.
        """
        if value is None:
            return None
        text = str(value).strip().lower()
        if text in ("", "auto"):
            return None
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(
                f'Invalid mode "{value}". Use auto, green, yellow, or red.'
            )


# -------------------------------------------------
# Tiers
# -------------------------------------------------
def resolve_tier(revenue: float) -> Optional[BonusTier]:
    for tier in BONUS_TIERS:
        if revenue >= tier.revenue_threshold:
            return tier
    return None


def get_pool(revenue: float) -> int:
    tier = resolve_tier(revenue)
    return tier.pool_amount if tier else 0


def get_tier_label(revenue: float) -> str:
    tier = resolve_tier(revenue)
    return tier.label if tier else "Baseline"


def next_tier(revenue: float) -> Optional[BonusTier]:
    """Lowest tier whose threshold is still above `revenue`."""
    for tier in reversed(BONUS_TIERS):
        if tier.revenue_threshold > revenue:
            return tier
    return None


# -------------------------------------------------
# Projection
# -------------------------------------------------
def project_revenue(revenue: float, current_day: int, total_days: int) -> float:
    if current_day <= 0:
        return 0.0
    return revenue / current_day * total_days


def build_leaderboard(users: List[UserTotal]) -> List[LeaderboardEntry]:
    """
    Contractors are left out entirely; shares are of the eligible total.
    Input order is kept for ties.
    """
    eligible = [u for u in users if u.name.strip() and not u.contractor]
    total = sum(u.hours for u in eligible)
    ranked = sorted(eligible, key=lambda u: u.hours, reverse=True)
    return [
        LeaderboardEntry(
            name=u.name,
            hours=u.hours,
            share_percent=(u.hours / total * 100) if total > 0 else 0.0,
        )
        for u in ranked
    ]


def calculate_stats(
    aggregates: Aggregates, now: datetime, cutoff_hour: int = 17
) -> ReportStats:
    today = now.date()
    total_days = total_working_days(today)
    current_day = current_working_day(now, cutoff_hour)
    revenue = aggregates.monthly.revenue

    users = [u for u in aggregates.per_user if u.name.strip()]

    return ReportStats(
        current_revenue=revenue,
        projected_revenue=project_revenue(revenue, current_day, total_days),
        current_work_day=current_day,
        total_work_days=total_days,
        days_remaining=max(total_days - current_day, 0),
        total_billable_hours=aggregates.monthly.billable_hours,
        global_rate=aggregates.global_rate,
        leaderboard=build_leaderboard(users),
        active_members=sum(1 for u in users if u.hours > 0),
        date=now,
    )


# -------------------------------------------------
# Mode
# -------------------------------------------------
def determine_mode(projected_revenue: float) -> Mode:
    if projected_revenue >= BONUS_THRESHOLD:
        return Mode.ON_TRACK
    if projected_revenue >= CLOSE_THRESHOLD:
        return Mode.CLOSE
    return Mode.BEHIND


def get_mode_details(mode: Mode, stats: ReportStats) -> ModeDetails:
    projected = stats.projected_revenue

    if mode is Mode.ON_TRACK:
        upcoming = next_tier(projected)
        return OnTrackDetails(
            pool=get_pool(projected),
            tier_label=get_tier_label(projected),
            is_top_tier=projected >= TOP_TIER_THRESHOLD,
            next_tier_pool=upcoming.pool_amount if upcoming else None,
            gap_to_next_tier=(upcoming.revenue_threshold - projected) if upcoming else 0.0,
        )

    if mode is Mode.CLOSE:
        gap = BONUS_THRESHOLD - projected
        additional_hours = gap / stats.global_rate if stats.global_rate > 0 else 0.0
        if stats.active_members > 0 and stats.days_remaining > 0:
            per_person_per_day = additional_hours / stats.active_members / stats.days_remaining
        else:
            per_person_per_day = 0.0
        return CloseDetails(
            gap=gap,
            additional_hours=additional_hours,
            hours_per_person_per_day=per_person_per_day,
        )

    return BehindDetails()

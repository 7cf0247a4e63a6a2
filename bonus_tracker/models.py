"""
Data types shared by the report pipeline.

Defines:
- TimeEntry: one normalized row from the time-entry API
- RateTable: per-project billing rates plus the global default
- AggregateBucket / UserTotal / ProjectTotal / Aggregates: aggregation output
  (month, week and per-day buckets)
- LeaderboardEntry / ReportStats: inputs to the bonus model and formatter
- OnTrackDetails / CloseDetails / BehindDetails: mode-specific message fields
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Union

GLOBAL_RATE_KEY = "__GLOBAL_RATE__"
WEEKLY_GOAL_KEY = "__WEEKLY_GOAL__"

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def project_id(name: str) -> str:
    """Normalized identifier used as the rate-table key for a project."""
    return _NON_ALNUM.sub("", name)


@dataclass(frozen=True)
class TimeEntry:
    user: str
    project: str
    date: date
    hours: float
    billable: bool


@dataclass
class RateTable:
    """
    Billing rates as stored in the rate file.

    `rates` maps a project id (or a raw project name, for older rows) to an
    integer hourly rate. The two reserved keys are lifted out into fields.
    """

    rates: Dict[str, int] = field(default_factory=dict)
    global_rate: int = 155
    weekly_goal: int = 200

    @classmethod
    def from_raw(
        cls, raw: Dict, default_rate: int = 155, default_goal: int = 200
    ) -> "RateTable":
        rates: Dict[str, int] = {}
        for key, value in (raw or {}).items():
            if key in (GLOBAL_RATE_KEY, WEEKLY_GOAL_KEY):
                continue
            parsed = _to_rate(value)
            if parsed is not None:
                rates[str(key)] = parsed

        global_rate = _to_rate((raw or {}).get(GLOBAL_RATE_KEY)) or default_rate
        weekly_goal = _to_rate((raw or {}).get(WEEKLY_GOAL_KEY)) or default_goal
        return cls(rates=rates, global_rate=global_rate, weekly_goal=weekly_goal)

    def resolve(self, project_name: str) -> int:
        pid = project_id(project_name)
        if pid in self.rates:
            return self.rates[pid]
        if project_name in self.rates:
            return self.rates[project_name]
        return self.global_rate


def _to_rate(value) -> Optional[int]:
    # Rates are stored as ints but older rows hold strings like "160"
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = int(float(value))
    except (TypeError, ValueError):
        return None
    return rate if rate > 0 else None


@dataclass
class AggregateBucket:
    total_hours: float = 0.0
    billable_hours: float = 0.0
    revenue: float = 0.0

    def add(self, hours: float, billable: bool, rate: int) -> None:
        self.total_hours += hours
        if billable:
            self.billable_hours += hours
            self.revenue += hours * rate

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": self.total_hours,
            "billable": self.billable_hours,
            "revenue": self.revenue,
        }


@dataclass
class UserTotal:
    name: str
    hours: float = 0.0
    contractor: bool = False


@dataclass
class ProjectTotal:
    id: str
    name: str
    hours: float = 0.0
    rate: int = 0
    default_rate: int = 0
    revenue: float = 0.0


@dataclass
class Windows:
    month_start: date
    this_week_start: date
    last_week_start: date
    last_week_end: date
    today: date


@dataclass
class Aggregates:
    monthly: AggregateBucket
    this_week: AggregateBucket
    last_week: AggregateBucket
    per_user: List[UserTotal]
    per_project: List[ProjectTotal]
    windows: Windows
    # every non-internal day in the fetch window, oldest first
    daily: Dict[date, AggregateBucket] = field(default_factory=dict)
    global_rate: int = 155
    weekly_goal: int = 200
    skipped: int = 0


@dataclass
class LeaderboardEntry:
    name: str
    hours: float
    share_percent: float


@dataclass
class ReportStats:
    current_revenue: float
    projected_revenue: float
    current_work_day: int
    total_work_days: int
    days_remaining: int
    total_billable_hours: float
    global_rate: int
    leaderboard: List[LeaderboardEntry]
    active_members: int
    date: datetime

    def summary(self) -> Dict[str, Union[int, float]]:
        return {
            "revenue": round(self.current_revenue),
            "projected": round(self.projected_revenue),
            "workDay": self.current_work_day,
            "totalDays": self.total_work_days,
            "daysLeft": self.days_remaining,
            "hours": round(self.total_billable_hours, 1),
            "activeMembers": self.active_members,
        }


@dataclass
class BonusTier:
    revenue_threshold: float
    pool_amount: int
    label: str


@dataclass
class OnTrackDetails:
    pool: int
    tier_label: str
    is_top_tier: bool
    next_tier_pool: Optional[int]
    gap_to_next_tier: float


@dataclass
class CloseDetails:
    gap: float
    additional_hours: float
    hours_per_person_per_day: float


@dataclass
class BehindDetails:
    pass


ModeDetails = Union[OnTrackDetails, CloseDetails, BehindDetails]

"""
Aggregation engine: raw TimeEntry list -> month / week buckets and
per-user / per-project totals.

Pure computation. The same inputs always give the same output.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from bonus_tracker.models import (
    AggregateBucket,
    Aggregates,
    ProjectTotal,
    RateTable,
    TimeEntry,
    UserTotal,
    project_id,
)
from bonus_tracker.periods import report_windows


@dataclass(frozen=True)
class AggregationPolicy:
    """
    Who and what counts.

    internal_patterns: case-insensitive substrings marking internal projects,
        excluded from every bucket and list.
    contractors: names kept in totals but flagged, so the leaderboard can
        leave them out.
    weekly_excluded_users: names left out of the two week buckets only.
    """

    internal_patterns: Tuple[str, ...] = ("IWD", "Runners", "Dominate")
    contractors: Tuple[str, ...] = ()
    weekly_excluded_users: Tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings) -> "AggregationPolicy":
        return cls(
            internal_patterns=tuple(settings.internal_project_patterns),
            contractors=tuple(settings.contractors),
            weekly_excluded_users=tuple(settings.weekly_excluded_users),
        )

    def is_internal(self, project: str) -> bool:
        name = project.lower()
        return any(p.lower() in name for p in self.internal_patterns if p)

    def is_contractor(self, user: str) -> bool:
        return user in self.contractors

    def excluded_from_weekly(self, user: str) -> bool:
        return user in self.weekly_excluded_users


def aggregate(
    entries: Iterable[TimeEntry],
    rates: RateTable,
    now: datetime,
    policy: Optional[AggregationPolicy] = None,
) -> Aggregates:
    policy = policy or AggregationPolicy()
    windows = report_windows(now.date())
    today = windows.today

    monthly = AggregateBucket()
    this_week = AggregateBucket()
    last_week = AggregateBucket()
    daily: Dict[date, AggregateBucket] = {}

    # dicts keep first-encounter order, which is the tie-break for sorting
    users: Dict[str, UserTotal] = {}
    projects: Dict[str, ProjectTotal] = {}

    for entry in entries:
        if policy.is_internal(entry.project):
            continue
        if entry.date > today:
            continue

        rate = rates.resolve(entry.project)

        # Per-day timeline covers the whole fetch window
        day = daily.get(entry.date)
        if day is None:
            day = daily[entry.date] = AggregateBucket()
        day.add(entry.hours, entry.billable, rate)

        # Month to date
        if entry.date >= windows.month_start:
            monthly.add(entry.hours, entry.billable, rate)

            project = projects.get(entry.project)
            if project is None:
                project = projects[entry.project] = ProjectTotal(
                    id=project_id(entry.project),
                    name=entry.project,
                    rate=rate,
                    default_rate=rates.global_rate,
                )

            if entry.billable:
                project.hours += entry.hours
                project.revenue += entry.hours * rate

                user = users.get(entry.user)
                if user is None:
                    user = users[entry.user] = UserTotal(
                        name=entry.user,
                        contractor=policy.is_contractor(entry.user),
                    )
                user.hours += entry.hours

        # Weeks
        if policy.excluded_from_weekly(entry.user):
            continue
        if entry.date >= windows.this_week_start:
            this_week.add(entry.hours, entry.billable, rate)
        elif windows.last_week_start <= entry.date <= windows.last_week_end:
            last_week.add(entry.hours, entry.billable, rate)

    return Aggregates(
        monthly=monthly,
        this_week=this_week,
        last_week=last_week,
        per_user=sort_by_hours(users.values()),
        per_project=sort_by_hours(projects.values()),
        windows=windows,
        daily=dict(sorted(daily.items())),
        global_rate=rates.global_rate,
        weekly_goal=rates.weekly_goal,
    )


def sort_by_hours(items: Iterable) -> List:
    """Descending by hours; sorted() is stable so ties keep input order."""
    return sorted(items, key=lambda item: item.hours, reverse=True)


def top_n(items: Sequence, n: int = 5) -> List[Dict]:
    return [{"name": item.name, "hours": item.hours} for item in sort_by_hours(items)[:n]]


def week_range_labels(aggregates: Aggregates) -> Dict[str, str]:
    w = aggregates.windows

    def fmt(d: date) -> str:
        return d.isoformat()

    return {
        "this": f"{fmt(w.this_week_start)} - Now",
        "last": f"{fmt(w.last_week_start)} - {fmt(w.last_week_end)}",
        "month": f"{fmt(w.month_start)} - Now",
    }


def timeline(aggregates: Aggregates) -> List[Dict]:
    """Per-day totals for the dashboard chart, oldest first."""
    return [
        {"date": d.isoformat(), "total": b.total_hours, "billable": b.billable_hours}
        for d, b in aggregates.daily.items()
    ]

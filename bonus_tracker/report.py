"""
Report pipeline: ingestion -> aggregation -> bonus model -> formatter -> Slack.

ReportService is the one entry point used by the API, the scheduler and
the CLI. It holds no state between runs except the dashboard cache.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from bonus_tracker.aggregation import (
    AggregationPolicy,
    aggregate,
    timeline,
    top_n,
    week_range_labels,
)
from bonus_tracker.bonus import (
    Mode,
    calculate_stats,
    determine_mode,
    get_mode_details,
    get_pool,
)
from bonus_tracker.cache import TTLCache
from bonus_tracker.config import Settings
from bonus_tracker.errors import BonusTrackerError, SourceUnavailableError
from bonus_tracker.formatter import format_message
from bonus_tracker.models import Aggregates, ModeDetails, RateTable, ReportStats, TimeEntry
from bonus_tracker.periods import default_fetch_window, local_now
from bonus_tracker.rate_store import RateStore
from bonus_tracker.slack import post_to_slack
from bonus_tracker.teamwork import TeamworkClient

logger = logging.getLogger("report")

DASHBOARD_CACHE_KEY = "month"


@dataclass
class Report:
    aggregates: Aggregates
    stats: ReportStats
    mode: Mode
    forced: bool
    details: ModeDetails
    message: str


class ReportService:
    def __init__(
        self,
        settings: Settings,
        teamwork: Optional[TeamworkClient] = None,
        rate_store: Optional[RateStore] = None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.teamwork = teamwork or TeamworkClient(settings)
        self.rate_store = rate_store or RateStore(settings)
        self.cache = cache or TTLCache(settings.cache_ttl_seconds)
        self.clock = clock or (lambda: local_now(settings.timezone))
        self.policy = AggregationPolicy.from_settings(settings)

    # -------------------------------------------------
    # Ingestion
    # -------------------------------------------------
    def fetch(self, now: datetime) -> Tuple[List[TimeEntry], int, RateTable]:
        """
        Pull time entries and rates concurrently. Returns the entries, the
        count of malformed rows dropped while parsing them, and the rates.

        The entry fetch must finish within the configured timeout or the
        whole run fails. The rate fetch degrades to defaults.
        """
        start, end = default_fetch_window(now.date(), self.settings.fetch_days)
        timeout = self.settings.http_timeout_seconds

        executor = ThreadPoolExecutor(max_workers=2)
        try:
            entries_future = executor.submit(self.teamwork.fetch_entries, start, end)
            rates_future = executor.submit(self.rate_store.fetch_rates)

            try:
                entries, skipped = entries_future.result(timeout=timeout)
            except FutureTimeout:
                raise SourceUnavailableError(
                    f"Time entry fetch did not finish within {timeout:g}s"
                )

            try:
                rates = rates_future.result(timeout=timeout)
            except Exception as e:
                logger.warning(f"⚠️ Rate table unavailable, using defaults: {e}")
                rates = RateTable(
                    global_rate=self.settings.default_global_rate,
                    weekly_goal=self.settings.default_weekly_goal,
                )
        finally:
            # Don't block on a hung request; its result is discarded
            executor.shutdown(wait=False, cancel_futures=True)

        return entries, skipped, rates

    # -------------------------------------------------
    # Aggregation
    # -------------------------------------------------
    def aggregate(self, now: Optional[datetime] = None) -> Aggregates:
        now = now or self.clock()
        entries, skipped, rates = self.fetch(now)
        result = aggregate(entries, rates, now, self.policy)
        result.skipped = skipped
        logger.info(
            f"📊 Month: {result.monthly.billable_hours:.1f} billable hrs, "
            f"${result.monthly.revenue:,.0f} revenue, {len(result.per_user)} users"
        )
        return result

    # -------------------------------------------------
    # Report
    # -------------------------------------------------
    def build_report(
        self, mode: Optional[str] = "auto", now: Optional[datetime] = None
    ) -> Report:
        forced_mode = Mode.parse(mode)
        now = now or self.clock()

        aggregates = self.aggregate(now)
        stats = calculate_stats(aggregates, now, self.settings.workday_cutoff_hour)

        if forced_mode is not None:
            resolved = forced_mode
            logger.info(f"🎯 Mode: {resolved.value.upper()} (forced)")
        else:
            resolved = determine_mode(stats.projected_revenue)
            logger.info(f"🎯 Mode: {resolved.value.upper()} (auto-detected)")

        details = get_mode_details(resolved, stats)
        message = format_message(stats, resolved, details, self.settings.dashboard_url)

        return Report(
            aggregates=aggregates,
            stats=stats,
            mode=resolved,
            forced=forced_mode is not None,
            details=details,
            message=message,
        )

    def send_report(
        self,
        mode: Optional[str] = "auto",
        preview: bool = False,
        test: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict:
        # Validate everything before any outbound call
        Mode.parse(mode)
        webhook_url = None
        if not preview:
            webhook_url = self.settings.webhook_for(test)
            if not webhook_url:
                name = "SLACK_TEST_WEBHOOK_URL" if test else "SLACK_WEBHOOK_URL"
                raise BonusTrackerError(f"{name} is not configured")

        report = self.build_report(mode, now)
        stats = dict(report.stats.summary(), pool=get_pool(report.stats.projected_revenue))

        if preview:
            logger.info("👀 Preview only, message not posted")
            return {
                "success": True,
                "preview": True,
                "mode": report.mode.value,
                "message": report.message,
                "stats": stats,
            }

        post_to_slack(
            webhook_url,
            report.message,
            timeout=self.settings.http_timeout_seconds,
        )
        target = "test channel" if test else "main channel"
        logger.info(f"✅ Report posted to Slack ({target})")
        return {
            "success": True,
            "preview": False,
            "mode": report.mode.value,
            "message": "Posted to Slack successfully!",
            "stats": stats,
        }

    # -------------------------------------------------
    # Dashboard
    # -------------------------------------------------
    def dashboard(self) -> Dict:
        cached = self.cache.get(DASHBOARD_CACHE_KEY)
        if cached is not None:
            return dict(cached, meta=dict(cached["meta"], cached=True))

        now = self.clock()
        aggregates = self.aggregate(now)
        data = dashboard_payload(aggregates, now)
        self.cache.set(DASHBOARD_CACHE_KEY, data)
        return data

    # -------------------------------------------------
    # Rates
    # -------------------------------------------------
    def update_rate(self, project_id, rate) -> Dict:
        rates = self.rate_store.update_rate(project_id, rate)
        self.cache.invalidate()
        return {"success": True, "rates": rates}


def dashboard_payload(aggregates: Aggregates, now: datetime) -> Dict:
    month_users = [u for u in aggregates.per_user if u.hours > 0]
    month_clients = [p for p in aggregates.per_project if p.hours > 0]

    return {
        "users": [
            {"name": u.name, "hours": u.hours, "contractor": u.contractor}
            for u in aggregates.per_user
        ],
        "projects": [
            {
                "id": p.id,
                "name": p.name,
                "hours": p.hours,
                "rate": p.rate,
                "defaultRate": p.default_rate,
            }
            for p in aggregates.per_project
        ],
        "weekly": {
            "month": dict(
                aggregates.monthly.to_dict(),
                topUsers=top_n(month_users),
                topClients=top_n(month_clients),
            ),
            "thisWeek": aggregates.this_week.to_dict(),
            "lastWeek": aggregates.last_week.to_dict(),
            "ranges": week_range_labels(aggregates),
            "timeline": timeline(aggregates),
        },
        "meta": {
            "serverTime": now.isoformat(),
            "globalRate": aggregates.global_rate,
            "weeklyGoal": aggregates.weekly_goal,
            "skippedEntries": aggregates.skipped,
            "cached": False,
        },
    }


"""
CLI for the bonus tracker Slack update.

Usage examples:

    # Post to the main Slack channel
    bonus-update

    # Preview the message in the terminal, nothing is posted
    bonus-update --dry-run

    # Post to the test webhook instead of the main channel
    bonus-update --test

    # Force a mode (real numbers, overridden classification)
    bonus-update --mode green
"""

import argparse
import logging
import sys
from typing import List, Optional

from bonus_tracker.config import Settings, get_settings
from bonus_tracker.errors import BonusTrackerError
from bonus_tracker.formatter import format_currency, format_hours
from bonus_tracker.logging_config import setup_logging
from bonus_tracker.report import Report, ReportService
from bonus_tracker.slack import post_to_slack


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bonus-update",
        description="Team bonus update for Slack.",
        epilog="Scheduled runs: Monday 09:00 and Thursday 14:00 (TIMEZONE).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview the formatted message without posting to Slack",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Post to SLACK_TEST_WEBHOOK_URL instead of the main webhook",
    )
    parser.add_argument(
        "--mode",
        choices=["green", "yellow", "red"],
        default=None,
        help="Force a mode (uses real data, overrides auto-detection)",
    )
    return parser


def print_summary(report: Report) -> None:
    stats = report.stats
    source = "forced via --mode" if report.forced else "auto-detected"
    print("")
    print("--- Stats Summary ---")
    print(f"  Revenue:       {format_currency(stats.current_revenue)}")
    print(f"  Projected:     {format_currency(stats.projected_revenue)}")
    print(
        f"  Work Day:      {stats.current_work_day} of {stats.total_work_days} "
        f"({stats.days_remaining} remaining)"
    )
    print(f"  Billable Hrs:  {format_hours(stats.total_billable_hours)}")
    print(f"  Team Members:  {stats.active_members} active")
    print(f"  Mode:          {report.mode.value.upper()} ({source})")
    print("")


def run(args: argparse.Namespace, settings: Settings, service: Optional[ReportService] = None) -> int:
    settings.validate(require_webhook=not args.dry_run, test=args.test)
    service = service or ReportService(settings)

    print("Fetching time entries and rates...")
    report = service.build_report(mode=args.mode or "auto")
    print_summary(report)

    if args.dry_run:
        print("--- Slack Message Preview ---")
        print(report.message)
        print("--- End Preview ---")
        print("")
        print("(Dry run: message was NOT posted to Slack)")
        return 0

    target = "test channel" if args.test else "main channel"
    print(f"Posting to Slack ({target})...")
    post_to_slack(
        settings.webhook_for(args.test),
        report.message,
        timeout=settings.http_timeout_seconds,
    )
    print("Message posted successfully!")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.timezone, level=logging.WARNING)

    try:
        return run(args, settings)
    except (BonusTrackerError, RuntimeError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

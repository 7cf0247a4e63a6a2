import logging
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from bonus_tracker.report import ReportService


# -------------------------------------------------
# Logging
# -------------------------------------------------
logger = logging.getLogger("scheduler")
logger.setLevel(logging.INFO)
logger.propagate = True


# -------------------------------------------------
# Scheduler state
# -------------------------------------------------
_scheduler: Optional[BackgroundScheduler] = None
_run_count: int = 0


def parse_slot(slot: str) -> Tuple[str, int, int]:
    """
    "mon 09:00" -> ("mon", 9, 0)
    """
    try:
        day, clock = slot.strip().split()
        hour, minute = clock.split(":")
        hour_i, minute_i = int(hour), int(minute)
    except ValueError:
        raise ValueError(f"Invalid schedule slot {slot!r}, expected e.g. 'mon 09:00'")
    if not (0 <= hour_i < 24 and 0 <= minute_i < 60):
        raise ValueError(f"Invalid time in schedule slot {slot!r}")
    return day.lower(), hour_i, minute_i


# -------------------------------------------------
# Job logic
# -------------------------------------------------
def scheduled_report(service: ReportService):
    """
    Post the auto-mode report. Failures are logged, never raised,
    so one bad run doesn't kill the scheduler.
    """
    global _run_count

    logger.info("⏳ Scheduled Slack update triggered")
    try:
        result = service.send_report(mode="auto")
        _run_count += 1
        logger.info(
            f"✅ Scheduled update posted (run #{_run_count}, mode={result['mode']})"
        )
    except Exception:
        logger.error("❌ Scheduled Slack update failed", exc_info=True)


# -------------------------------------------------
# Scheduler bootstrap
# -------------------------------------------------
def start_scheduler(service: ReportService) -> Optional[BackgroundScheduler]:
    """
    Start scheduler safely (idempotent).
    """
    global _scheduler

    settings = service.settings
    if not settings.scheduler_enabled:
        logger.info("⏸️ Scheduler disabled (SCHEDULER_ENABLED=false)")
        return None

    logger.info("🚀 Initializing scheduler")

    if _scheduler and _scheduler.running:
        logger.info("⚠️ Scheduler already running, skipping start")
        return _scheduler

    tz = ZoneInfo(settings.timezone)
    _scheduler = BackgroundScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        timezone=tz,
    )

    for slot in settings.schedule:
        day, hour, minute = parse_slot(slot)
        _scheduler.add_job(
            scheduled_report,
            trigger=CronTrigger(day_of_week=day, hour=hour, minute=minute, timezone=tz),
            args=[service],
            id=f"slack_update_{day}_{hour:02d}{minute:02d}",
            replace_existing=True,
            max_instances=1,  # no overlap
            coalesce=True,  # skip missed runs
        )

    _scheduler.start()

    logger.info(f"🚀 Scheduler running = {_scheduler.running}")
    logger.info(f"📌 Jobs = {job_ids()}")
    return _scheduler


def job_ids() -> List[str]:
    if not _scheduler:
        return []
    return [job.id for job in _scheduler.get_jobs()]


def stop_scheduler():
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler stopped")
    _scheduler = None

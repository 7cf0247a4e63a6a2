import logging
import math
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from bonus_tracker.models import TimeEntry

logger = logging.getLogger("ingestion")


def _to_number(value) -> float:
    """
    Teamwork sends hours/minutes as strings ("3", "45").
    Anything that is not a finite number counts as zero.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def entry_hours(raw: Dict) -> float:
    """Decimal hours + minutes/60, never negative."""
    hours = _to_number(raw.get("hours")) + _to_number(raw.get("minutes")) / 60
    return max(hours, 0.0)


def _parse_date(value) -> Optional[date]:
    """
    Accepts "2026-02-12T00:00:00Z", "2026-02-12" or compact "20260212".
    The calendar date is taken as-is; no timezone conversion.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    try:
        if len(text) >= 10 and text[4] == "-":
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        if len(text) >= 8 and text[:8].isdigit():
            return datetime.strptime(text[:8], "%Y%m%d").date()
    except ValueError:
        return None
    return None


def _is_billable(value) -> bool:
    return value is True or value == "1"


def parse_entry(raw: Dict) -> Optional[TimeEntry]:
    """
    Normalize one raw Teamwork time entry into a TimeEntry.

    Returns None for records that cannot be placed in time (no usable date)
    or are not objects at all. Bad numeric fields become zero hours.
    """
    if not isinstance(raw, dict):
        return None

    entry_date = _parse_date(raw.get("date"))
    if entry_date is None:
        return None

    first = raw.get("person-first-name") or ""
    last = raw.get("person-last-name") or ""
    user = f"{first} {last}".strip()

    project = raw.get("project-name") or "Unknown Project"

    return TimeEntry(
        user=user,
        project=str(project),
        date=entry_date,
        hours=entry_hours(raw),
        billable=_is_billable(raw.get("isbillable")),
    )


def parse_entries(raw_entries: List[Dict]) -> Tuple[List[TimeEntry], int]:
    """
    Parse a batch, skipping malformed rows.
    Returns (entries, skipped_count).
    """
    entries: List[TimeEntry] = []
    skipped = 0

    for idx, raw in enumerate(raw_entries):
        entry = parse_entry(raw)
        if entry is None:
            skipped += 1
            logger.warning(f"⚠️ Skipping malformed time entry #{idx}: {raw!r:.200}")
            continue
        entries.append(entry)

    if skipped:
        logger.info(f"🧹 Parsed {len(entries)} entries, skipped {skipped}")

    return entries, skipped

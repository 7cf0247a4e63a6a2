"""
Teamwork time-entry API client.

Only the time_entries endpoint is used. Pages are pulled one after another
until the API returns a short page or the page ceiling is reached.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

import requests

from bonus_tracker.config import Settings
from bonus_tracker.errors import SourceUnavailableError
from bonus_tracker.models import TimeEntry
from bonus_tracker.periods import format_compact
from bonus_tracker.time_tracking import parse_entries

logger = logging.getLogger("ingestion")


class TeamworkClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.base_url = f"https://{settings.teamwork_domain}"
        self.page_size = settings.page_size
        self.max_pages = settings.max_pages
        self.timeout = settings.http_timeout_seconds

        # =================================================
        # Shared HTTP session
        # =================================================
        self.session = session or requests.Session()
        # Teamwork basic auth: API token as username, any password
        self.session.auth = (settings.teamwork_api_token or "", "xxx")
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        try:
            resp = self.session.get(
                f"{self.base_url}{path}", params=params, timeout=self.timeout
            )
        except requests.Timeout:
            raise SourceUnavailableError("Teamwork API timed out")
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Teamwork API unreachable: {e}")

        if not resp.ok:
            raise SourceUnavailableError(
                "Teamwork API error", resp.status_code, resp.text[:500]
            )
        try:
            data = resp.json()
        except ValueError:
            raise SourceUnavailableError("Teamwork API returned invalid JSON")
        if not isinstance(data, dict):
            raise SourceUnavailableError("Teamwork API returned unexpected payload")
        return data

    # =================================================
    # TIME ENTRIES (paginated)
    # =================================================
    def fetch_raw_entries(self, start: date, end: date) -> List[Dict]:
        all_entries: List[Dict] = []

        page = 1
        while page <= self.max_pages:
            params = {
                "page": page,
                "pageSize": self.page_size,
                "fromDate": format_compact(start),
                "toDate": format_compact(end),
                "sortorder": "desc",
            }
            data = self._get("/time_entries.json", params)
            rows = data.get("time-entries") or []
            if not isinstance(rows, list):
                rows = []

            all_entries.extend(rows)
            logger.info(f"📄 Page {page}: {len(rows)} entries")

            if len(rows) < self.page_size:
                break
            page += 1
        else:
            logger.warning(
                f"⚠️ Stopped after {self.max_pages} pages, results may be truncated"
            )

        return all_entries

    def fetch_entries(self, start: date, end: date) -> Tuple[List[TimeEntry], int]:
        """Parsed entries plus the number of malformed rows dropped."""
        logger.info(f"⏳ Fetching time entries {format_compact(start)} → {format_compact(end)}")
        raw = self.fetch_raw_entries(start, end)
        entries, skipped = parse_entries(raw)
        logger.info(f"✅ Fetched {len(entries)} time entries ({skipped} skipped)")
        return entries, skipped

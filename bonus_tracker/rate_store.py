"""
Rate table stored as a JSON file in a GitHub repository.

Reads degrade to defaults: a report without custom rates is still useful.
Writes are a read-modify-write keyed on the file's sha, so a concurrent
edit makes GitHub reject the PUT instead of silently merging.
"""

import base64
import json
import logging
import re
from typing import Dict, Optional, Tuple

import requests

from bonus_tracker.config import Settings
from bonus_tracker.errors import RateStoreError, ValidationError
from bonus_tracker.models import GLOBAL_RATE_KEY, WEEKLY_GOAL_KEY, RateTable

logger = logging.getLogger("rates")

PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,100}$")
RESERVED_KEYS = {GLOBAL_RATE_KEY, WEEKLY_GOAL_KEY}
FORBIDDEN_KEYS = {"__proto__", "constructor", "prototype"}
MIN_RATE = 1
MAX_RATE = 10000


def validate_rate_update(project_id, rate) -> Tuple[str, int]:
    """
    Check a rate edit before anything touches the store.
    Returns the cleaned (project_id, rate).
    """
    if not isinstance(project_id, str) or not PROJECT_ID_PATTERN.match(project_id):
        raise ValidationError(
            "projectId must be 1-100 characters of letters, digits, '-' or '_'"
        )
    if project_id.lower() in FORBIDDEN_KEYS:
        raise ValidationError(f"projectId {project_id!r} is not allowed")
    if project_id.startswith("__") and project_id not in RESERVED_KEYS:
        raise ValidationError(f"projectId {project_id!r} is reserved")

    if isinstance(rate, bool):
        raise ValidationError("rate must be an integer")
    if isinstance(rate, str) and rate.strip().isdigit():
        rate = int(rate.strip())
    if isinstance(rate, float) and rate.is_integer():
        rate = int(rate)
    if not isinstance(rate, int):
        raise ValidationError("rate must be an integer")
    if not MIN_RATE <= rate <= MAX_RATE:
        raise ValidationError(f"rate must be between {MIN_RATE} and {MAX_RATE}")

    return project_id, rate


class RateStore:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.url = (
            f"{settings.github_api_url}/repos/{settings.rates_repo}"
            f"/contents/{settings.rates_path}"
        )
        self.default_rate = settings.default_global_rate
        self.default_goal = settings.default_weekly_goal
        self.timeout = settings.http_timeout_seconds
        self.has_token = bool(settings.github_token)

        self.session = session or requests.Session()
        if settings.github_token:
            self.session.headers.update(
                {"Authorization": f"token {settings.github_token}"}
            )

    def _defaults(self) -> RateTable:
        return RateTable(global_rate=self.default_rate, weekly_goal=self.default_goal)

    # -------------------------------------------------
    # Read (best effort)
    # -------------------------------------------------
    def fetch_rates(self) -> RateTable:
        try:
            resp = self.session.get(
                self.url,
                headers={"Accept": "application/vnd.github.v3.raw"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"⚠️ Rate table unreachable, using defaults: {e}")
            return self._defaults()

        if not resp.ok:
            logger.warning(
                f"⚠️ Rate table fetch failed ({resp.status_code}), using defaults"
            )
            return self._defaults()

        try:
            raw = resp.json()
        except ValueError:
            logger.warning("⚠️ Rate table is not valid JSON, using defaults")
            return self._defaults()

        if not isinstance(raw, dict):
            logger.warning("⚠️ Rate table is not an object, using defaults")
            return self._defaults()

        table = RateTable.from_raw(raw, self.default_rate, self.default_goal)
        logger.info(
            f"💲 Loaded {len(table.rates)} project rates (global ${table.global_rate})"
        )
        return table

    # -------------------------------------------------
    # Write (strict)
    # -------------------------------------------------
    def _read_for_update(self) -> Tuple[Dict, Optional[str]]:
        try:
            resp = self.session.get(
                self.url,
                headers={"Accept": "application/vnd.github.v3+json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RateStoreError(f"Rate file unreachable: {e}")

        # A missing file is created by the first write
        if resp.status_code == 404:
            return {}, None
        if not resp.ok:
            raise RateStoreError("Rate file read failed", resp.status_code)

        try:
            meta = resp.json()
        except ValueError:
            raise RateStoreError("Rate file metadata is not valid JSON")
        content = meta.get("content")
        if not content:
            return {}, meta.get("sha")

        try:
            rates = json.loads(base64.b64decode(content).decode("utf-8"))
        except ValueError:
            raise RateStoreError("Rate file content is not valid JSON")
        if not isinstance(rates, dict):
            raise RateStoreError("Rate file content is not an object")
        return rates, meta.get("sha")

    def update_rate(self, project_id, rate) -> Dict:
        project_id, rate = validate_rate_update(project_id, rate)
        if not self.has_token:
            raise RateStoreError("GITHUB_PAT is not configured, rate table is read-only")

        rates, sha = self._read_for_update()
        rates[project_id] = rate

        payload = {
            "message": f"Update rate for {project_id} to ${rate}",
            "content": base64.b64encode(
                json.dumps(rates, indent=2).encode("utf-8")
            ).decode("ascii"),
        }
        if sha:
            payload["sha"] = sha

        try:
            resp = self.session.put(
                self.url,
                json=payload,
                headers={"Accept": "application/vnd.github.v3+json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RateStoreError(f"Rate file commit failed: {e}")

        if not resp.ok:
            raise RateStoreError("Rate file commit failed", resp.status_code)

        logger.info(f"💾 Rate for {project_id} set to ${rate}")
        return rates

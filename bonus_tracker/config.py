"""
Runtime configuration for the bonus tracker.

Values come from the environment (a local .env is loaded first). Build a
Settings object once at startup and pass it down; nothing else in the
package reads os.environ directly.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load variables from .env into environment
load_dotenv()


def _get_env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {value!r}")


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {value!r}")


def _get_env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass
class Settings:
    """
    All knobs of the service.

    Required to fetch data: teamwork_api_token, teamwork_domain.
    Required to post: slack_webhook_url (or slack_test_webhook_url for test runs).
    Everything else has a documented default.
    """

    # =========================
    # TEAMWORK (time entries)
    # =========================
    teamwork_api_token: Optional[str] = None
    teamwork_domain: Optional[str] = None
    page_size: int = 500
    max_pages: int = 20
    fetch_days: int = 45
    http_timeout_seconds: float = 15.0

    # =========================
    # RATE STORE (GitHub contents API)
    # =========================
    github_token: Optional[str] = None
    rates_repo: str = "iwdjoe/iwd-bonus-tracker"
    rates_path: str = "rates.json"
    github_api_url: str = "https://api.github.com"
    default_global_rate: int = 155
    default_weekly_goal: int = 200

    # =========================
    # SLACK
    # =========================
    slack_webhook_url: Optional[str] = None
    slack_test_webhook_url: Optional[str] = None
    dashboard_url: str = "https://iwd-bonus-tracker.netlify.app"

    # =========================
    # REPORTING POLICY
    # =========================
    timezone: str = "Europe/Madrid"
    internal_project_patterns: Tuple[str, ...] = ("IWD", "Runners", "Dominate")
    contractors: Tuple[str, ...] = ()
    weekly_excluded_users: Tuple[str, ...] = ()
    workday_cutoff_hour: int = 17
    cache_ttl_seconds: float = 60.0

    # =========================
    # AUTH (identity provider)
    # =========================
    identity_url: Optional[str] = None
    org_email_domain: Optional[str] = None

    # =========================
    # SCHEDULER
    # =========================
    scheduler_enabled: bool = True
    schedule: Tuple[str, ...] = field(default=("mon 09:00", "thu 14:00"))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            teamwork_api_token=_get_env_str("TEAMWORK_API_TOKEN"),
            teamwork_domain=_get_env_str("TEAMWORK_DOMAIN"),
            page_size=_get_env_int("TEAMWORK_PAGE_SIZE", 500),
            max_pages=_get_env_int("TEAMWORK_MAX_PAGES", 20),
            fetch_days=_get_env_int("FETCH_DAYS", 45),
            http_timeout_seconds=_get_env_float("HTTP_TIMEOUT_SECONDS", 15.0),
            github_token=_get_env_str("GITHUB_PAT"),
            rates_repo=_get_env_str("RATES_REPO", "iwdjoe/iwd-bonus-tracker"),
            rates_path=_get_env_str("RATES_PATH", "rates.json"),
            github_api_url=_get_env_str("GITHUB_API_URL", "https://api.github.com"),
            default_global_rate=_get_env_int("DEFAULT_GLOBAL_RATE", 155),
            default_weekly_goal=_get_env_int("DEFAULT_WEEKLY_GOAL", 200),
            slack_webhook_url=_get_env_str("SLACK_WEBHOOK_URL"),
            slack_test_webhook_url=_get_env_str("SLACK_TEST_WEBHOOK_URL"),
            dashboard_url=_get_env_str(
                "DASHBOARD_URL", "https://iwd-bonus-tracker.netlify.app"
            ),
            timezone=_get_env_str("TIMEZONE", "Europe/Madrid"),
            internal_project_patterns=_get_env_list(
                "INTERNAL_PROJECT_PATTERNS", ("IWD", "Runners", "Dominate")
            ),
            contractors=_get_env_list("CONTRACTORS", ()),
            weekly_excluded_users=_get_env_list("WEEKLY_EXCLUDED_USERS", ()),
            workday_cutoff_hour=_get_env_int("WORKDAY_CUTOFF_HOUR", 17),
            cache_ttl_seconds=_get_env_float("CACHE_TTL_SECONDS", 60.0),
            identity_url=_get_env_str("IDENTITY_URL"),
            org_email_domain=_get_env_str("ORG_EMAIL_DOMAIN"),
            scheduler_enabled=_get_env_bool("SCHEDULER_ENABLED", True),
            schedule=_get_env_list("SLACK_SCHEDULE", ("mon 09:00", "thu 14:00")),
        )

    # =========================
    # VALIDATION (FAIL FAST)
    # =========================
    def validate(self, *, require_webhook: bool = False, test: bool = False) -> None:
        missing = []

        if not self.teamwork_api_token:
            missing.append("TEAMWORK_API_TOKEN")

        if not self.teamwork_domain:
            missing.append("TEAMWORK_DOMAIN")

        # GITHUB_PAT is optional - without it the rate table falls back to defaults

        if require_webhook:
            if test and not self.slack_test_webhook_url:
                missing.append("SLACK_TEST_WEBHOOK_URL")
            elif not test and not self.slack_webhook_url:
                missing.append("SLACK_WEBHOOK_URL")

        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        if not 0 <= self.workday_cutoff_hour <= 24:
            raise RuntimeError("WORKDAY_CUTOFF_HOUR must be between 0 and 24")

    def webhook_for(self, test: bool = False) -> Optional[str]:
        return self.slack_test_webhook_url if test else self.slack_webhook_url


_SETTINGS: Optional[Settings] = None


def get_settings(force_reload: bool = False) -> Settings:
    """
    Return the process-wide Settings instance.

    Use `force_reload=True` after changing environment variables at runtime.
    """
    global _SETTINGS
    if _SETTINGS is None or force_reload:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def current_settings() -> Settings:
    """FastAPI dependency wrapper around get_settings()."""
    return get_settings()

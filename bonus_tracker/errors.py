"""
Error taxonomy for the report pipeline.

Each error carries the HTTP status the API layer answers with, so the
boundary can turn any of them into a structured payload.
"""

from typing import Optional


class BonusTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SourceUnavailableError(BonusTrackerError):
    """The time-entry API failed or timed out. Fatal for a report run."""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        if upstream_status is not None:
            message = f"{message} ({upstream_status})"
            if body:
                message = f"{message}: {body}"
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class ValidationError(BonusTrackerError):
    """Caller supplied an out-of-range mode, rate, or project id."""

    status_code = 400


class PublishError(BonusTrackerError):
    """Slack rejected the message."""

    status_code = 502

    def __init__(self, status: int, body: str):
        super().__init__(f"Slack webhook failed ({status}): {body}")
        self.upstream_status = status
        self.body = body


class RateStoreError(BonusTrackerError):
    """Reading or committing the rate file failed during an update."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        if upstream_status is not None:
            message = f"{message} ({upstream_status})"
        super().__init__(message)
        self.upstream_status = upstream_status

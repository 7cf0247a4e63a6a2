import logging
from typing import Optional

import requests

from bonus_tracker.errors import PublishError

logger = logging.getLogger("slack")


def post_to_slack(
    webhook_url: str,
    message: str,
    timeout: float = 15.0,
    session: Optional[requests.Session] = None,
) -> bool:
    """
    Post one message to a Slack incoming webhook.
    Any non-2xx answer is raised as PublishError; there are no retries.
    """
    http = session or requests
    try:
        resp = http.post(webhook_url, json={"text": message}, timeout=timeout)
    except requests.RequestException as e:
        raise PublishError(0, str(e))

    if not resp.ok:
        raise PublishError(resp.status_code, resp.text)

    logger.info("📨 Message posted to Slack")
    return True

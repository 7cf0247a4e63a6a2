"""
Dashboard access control.

The front end logs users in with the identity provider and forwards its
bearer token. We ask the provider who the token belongs to and only let
through emails on the organization's domain.
"""

import logging
from typing import Dict, Optional

import requests
from fastapi import Depends, Header, HTTPException

from bonus_tracker.config import Settings, current_settings

logger = logging.getLogger("auth")


def email_in_domain(email: Optional[str], domain: Optional[str]) -> bool:
    if not email or not domain or "@" not in email:
        return False
    return email.rsplit("@", 1)[1].strip().lower() == domain.strip().lower().lstrip("@")


def fetch_identity(settings: Settings, token: str) -> Optional[Dict]:
    """Return the provider's user record for `token`, or None if rejected."""
    try:
        resp = requests.get(
            f"{settings.identity_url.rstrip('/')}/user",
            headers={"Authorization": f"Bearer {token}"},
            timeout=settings.http_timeout_seconds,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Identity provider unreachable: {e}")
        raise HTTPException(status_code=503, detail="Identity provider unavailable")

    if resp.status_code in (401, 403):
        return None
    if not resp.ok:
        logger.error(f"❌ Identity provider error {resp.status_code}")
        raise HTTPException(status_code=503, detail="Identity provider unavailable")
    try:
        return resp.json()
    except ValueError:
        return None


def require_org_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(current_settings),
) -> Dict:
    """FastAPI dependency: 401 without a valid token, 403 for outsiders."""
    if not settings.identity_url or not settings.org_email_domain:
        logger.error("❌ IDENTITY_URL / ORG_EMAIL_DOMAIN not configured, refusing access")
        raise HTTPException(status_code=503, detail="Authentication is not configured")

    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not logged in")

    user = fetch_identity(settings, authorization.split(" ", 1)[1].strip())
    if not user:
        raise HTTPException(status_code=401, detail="Invalid session")

    email = user.get("email")
    if not email_in_domain(email, settings.org_email_domain):
        logger.warning(f"🚫 Rejected dashboard access for {email}")
        raise HTTPException(status_code=403, detail="Access restricted to organization accounts")

    return user

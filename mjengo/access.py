"""
Access decision — may this identity run a calculator right now?

authorize(db, identity, is_consuming_action):
1. find or create the entitlement record (first-touch signup)
2. active, unexpired subscription → ALLOW, nothing changes
3. under the free quota → ALLOW; a consuming action (calculation
   submit, not a page view) atomically takes one free calculation
4. otherwise → DENY with usage and a subscription link

Token balance is credited by payments but not consulted here.

Any storage error fails closed: a false ALLOW means unbounded free use.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import entitlements
from .config import settings
from .database import get_db
from .email_checks import normalize_email
from .sessions import get_current_identity

logger = logging.getLogger(__name__)


@dataclass
class AccessDecision:
    allowed: bool
    email: str
    calculations_used: int = 0
    subscription_active: bool = False
    consumed: bool = False
    remediation_link: Optional[str] = None
    reason: str = ""
    failed: bool = False  # Storage error, so there is no real usage snapshot

    def paywall(self) -> dict:
        return {
            "message": self.reason,
            "email": self.email,
            "calculations_used": self.calculations_used,
            "free_limit": settings.FREE_CALCULATIONS,
            "subscribe_url": self.remediation_link,
        }


def subscription_link(email: str) -> str:
    return f"{settings.subscribe_url}?email={quote(email, safe='')}"


def _deny(email: str, calculations_used: int, reason: str) -> AccessDecision:
    return AccessDecision(
        allowed=False,
        email=email,
        calculations_used=calculations_used,
        remediation_link=subscription_link(email),
        reason=reason,
    )


def authorize(
    db: Session,
    identity: str,
    is_consuming_action: bool,
    now: Optional[datetime] = None,
) -> AccessDecision:
    email = normalize_email(identity)
    free_limit = settings.FREE_CALCULATIONS
    try:
        user = entitlements.find_or_create(db, email)

        if entitlements.subscription_is_active(user, now):
            return AccessDecision(
                allowed=True,
                email=email,
                calculations_used=user.calculations_used,
                subscription_active=True,
                reason="Active subscription",
            )

        if user.calculations_used < free_limit:
            if not is_consuming_action:
                return AccessDecision(
                    allowed=True,
                    email=email,
                    calculations_used=user.calculations_used,
                    reason=f"{free_limit - user.calculations_used} free calculations remaining",
                )
            if entitlements.consume_free_calculation(db, user, free_limit):
                logger.info("Free calculation %d/%d used by %s", user.calculations_used, free_limit, email)
                return AccessDecision(
                    allowed=True,
                    email=email,
                    calculations_used=user.calculations_used,
                    consumed=True,
                    reason=f"{free_limit - user.calculations_used} free calculations remaining",
                )
            # Lost the race for the last free calculation

        logger.info("Free limit reached for %s", email)
        return _deny(email, user.calculations_used, "Free limit reached. Please subscribe to continue.")

    except SQLAlchemyError:
        logger.exception("Access check failed for %s — denying", email)
        db.rollback()
        decision = _deny(email, 0, "An error occurred while checking access. Please try again.")
        decision.failed = True
        return decision


# --- FastAPI glue ---

def enforce(decision: AccessDecision) -> AccessDecision:
    """Raise the paywall 403 for a DENY."""
    if decision.failed:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=decision.reason)
    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=decision.paywall())
    return decision


def require_view_access(
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> AccessDecision:
    """Dependency for page views — checks access without drawing down quota."""
    return enforce(authorize(db, identity, is_consuming_action=False))

"""
Entitlement store — per-email usage counters and subscription state.

find_or_create is the explicit first-touch signup: the first access check
(or payment) for an unseen email creates a zeroed record.

Every mutation is a single UPDATE evaluated by the database, never a
load-modify-save in Python. Callers own the transaction except where a
function says it commits.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .email_checks import normalize_email
from .schemas import EntitlementStatus

logger = logging.getLogger(__name__)


def subscription_is_active(user: models.User, now: Optional[datetime] = None) -> bool:
    """Lazy expiry — a stale active flag past its expiry counts as inactive."""
    now = now or datetime.utcnow()
    return bool(
        user.subscription_active
        and user.subscription_expires is not None
        and user.subscription_expires > now
    )


def get_user(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


def find_or_create(db: Session, email: str) -> models.User:
    """Return the record for `email`, creating a zeroed one if needed. Commits on create."""
    email = normalize_email(email)
    user = get_user(db, email)
    if user:
        return user

    user = models.User(
        email=email,
        calculations_used=0,
        subscription_active=False,
        token_balance=0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first touch; the other request's row wins
        db.rollback()
        user = get_user(db, email)
        if user is None:
            raise
        return user

    db.refresh(user)
    logger.info("Created entitlement record for %s", email)
    return user


def consume_free_calculation(db: Session, user: models.User, limit: Optional[int] = None) -> bool:
    """
    Atomically take one free calculation. Commits.

    The quota check and the increment are one conditional UPDATE, so
    concurrent requests at the boundary can't both pass. Returns False
    when the quota was already used up.
    """
    limit = settings.FREE_CALCULATIONS if limit is None else limit
    updated = (
        db.query(models.User)
        .filter(models.User.id == user.id, models.User.calculations_used < limit)
        .update(
            {
                models.User.calculations_used: models.User.calculations_used + 1,
                models.User.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    db.refresh(user)
    return updated == 1


def activate_subscription(db: Session, user: models.User, now: Optional[datetime] = None) -> datetime:
    """Set a fresh expiry of now + SUBSCRIPTION_DAYS. Replaces, never extends. Does not commit."""
    now = now or datetime.utcnow()
    expires = now + timedelta(days=settings.SUBSCRIPTION_DAYS)
    db.query(models.User).filter(models.User.id == user.id).update(
        {
            models.User.subscription_active: True,
            models.User.subscription_expires: expires,
            models.User.subscription_type: "monthly",
            models.User.updated_at: now,
        },
        synchronize_session=False,
    )
    return expires


def credit_tokens(db: Session, user: models.User, tokens: int) -> None:
    """Atomic token_balance += tokens. Does not commit."""
    if tokens < 0:
        raise ValueError("tokens must be non-negative")
    db.query(models.User).filter(models.User.id == user.id).update(
        {
            models.User.token_balance: models.User.token_balance + tokens,
            models.User.updated_at: datetime.utcnow(),
        },
        synchronize_session=False,
    )


def reset_usage(db: Session, email: str) -> Optional[models.User]:
    """Administrative reset of the free-calculation counter. Commits."""
    user = get_user(db, email)
    if user is None:
        return None
    user.calculations_used = 0
    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    logger.info("Calculation counter reset for %s", user.email)
    return user


def to_status(user: Optional[models.User], email: str, now: Optional[datetime] = None) -> EntitlementStatus:
    free_limit = settings.FREE_CALCULATIONS
    if user is None:
        return EntitlementStatus(
            email=normalize_email(email),
            free_limit=free_limit,
            free_remaining=free_limit,
        )
    active = subscription_is_active(user, now)
    return EntitlementStatus(
        email=user.email,
        subscription_active=active,
        subscription_expires=user.subscription_expires if active else None,
        token_balance=user.token_balance or 0,
        calculations_used=user.calculations_used or 0,
        free_limit=free_limit,
        free_remaining=max(free_limit - (user.calculations_used or 0), 0),
    )


def get_entitlement(db: Session, email: str, now: Optional[datetime] = None) -> EntitlementStatus:
    """Status snapshot. Unknown emails get a zeroed snapshot — no record is created."""
    return to_status(get_user(db, email), email, now)

"""
Process-wide collaborators, exposed as FastAPI dependencies so tests can
swap them with app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Header, HTTPException, status

from .config import settings
from .identity import IdentityVerifier
from .notifier import build_notifier
from .payments import PaystackClient


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    return IdentityVerifier(notifier=build_notifier())


@lru_cache
def get_paystack_client() -> PaystackClient:
    return PaystackClient(settings.PAYSTACK_SECRET_KEY, settings.PAYSTACK_BASE_URL)


def require_admin(x_admin_key: str = Header(default="")) -> None:
    """Admin endpoints are disabled unless ADMIN_API_KEY is set."""
    if not settings.ADMIN_API_KEY or x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

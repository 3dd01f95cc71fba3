"""
Auth endpoints — email code login, logout, me.

Login flow:
- POST /api/auth/send-code → emails a 6-digit code (15 min, 5 attempts)
- POST /api/auth/verify-code → consumes the code, sets the session cookie
  and returns the same token for API clients
- The first calculator access creates the entitlement record
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from .. import entitlements
from ..config import settings
from ..database import get_db
from ..dependencies import get_identity_verifier
from ..identity import IdentityVerifier
from ..schemas import SendCodeRequest, SessionResponse, VerifyCodeRequest
from ..sessions import create_session, destroy_session, get_current_identity, get_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/send-code")
def send_code(
    request: SendCodeRequest,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
):
    """Validate the address and email a verification code."""
    email = verifier.request_code(request.email)
    return {"success": True, "message": "Verification code sent to your email.", "email": email}


@router.post("/verify-code", response_model=SessionResponse)
def verify_code(
    request: VerifyCodeRequest,
    response: Response,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    db: Session = Depends(get_db),
):
    """Check the code and start a verified session."""
    email = verifier.verify_code(request.email, request.code)
    token, expires_at = create_session(db, email)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    return {
        "success": True,
        "message": "Email verified successfully!",
        "email": email,
        "session_token": token,
        "expires_at": expires_at,
    }


@router.post("/logout")
def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
):
    email = destroy_session(db, token) if token else None
    if email:
        logger.info("User logged out: %s", email)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me")
def me(identity: str = Depends(get_current_identity), db: Session = Depends(get_db)):
    """The current verified identity and its entitlement snapshot."""
    return entitlements.get_entitlement(db, identity)

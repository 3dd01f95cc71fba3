"""
Session context — carries a verified email across requests.

The client gets a signed session JWT (cookie, or Bearer header for API
clients). The server keeps a row with the token's SHA-256 hash, so logout
revokes immediately and expiry is enforced server-side too.

Libraries: python-jose[cryptography] for JWT.
"""

import hashlib
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from . import models

security = HTTPBearer(auto_error=False)


def _get_jwt_secret() -> str:
    """Get JWT secret, failing loudly if not configured."""
    secret = settings.JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT_SECRET not configured — set it in environment variables",
        )
    return secret


def hash_token(token: str) -> str:
    """SHA-256 hash of a token for storage. Session tokens are stored hashed."""
    return hashlib.sha256(token.encode()).hexdigest()


def create_session(db: Session, email: str, now: Optional[datetime] = None) -> tuple[str, datetime]:
    """Create a verified session for `email`. Returns (token, expires_at)."""
    now = now or datetime.utcnow()
    expire = now + timedelta(hours=settings.SESSION_EXPIRE_HOURS)
    payload = {
        "sub": email,
        "exp": expire,
        "type": "session",
        "jti": str(uuid.uuid4()),
    }
    token = jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)

    db.add(models.LoginSession(
        token_hash=hash_token(token),
        email=email,
        verified=True,
        created_at=now,
        expires_at=expire,
    ))
    db.commit()
    return token, expire


def resolve_session(db: Session, token: str, now: Optional[datetime] = None) -> Optional[str]:
    """Return the verified email for a session token, or None."""
    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "session" or not payload.get("sub"):
        return None

    row = db.query(models.LoginSession).filter(
        models.LoginSession.token_hash == hash_token(token),
    ).first()
    if not row or not row.verified:
        return None
    if row.expires_at <= (now or datetime.utcnow()):
        return None
    return row.email


def destroy_session(db: Session, token: str) -> Optional[str]:
    """Delete a session. Returns the email it belonged to, if any."""
    row = db.query(models.LoginSession).filter(
        models.LoginSession.token_hash == hash_token(token),
    ).first()
    if not row:
        return None
    email = row.email
    db.delete(row)
    db.commit()
    return email


def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    count = db.query(models.LoginSession).filter(
        models.LoginSession.expires_at <= (now or datetime.utcnow()),
    ).delete(synchronize_session=False)
    db.commit()
    return count


# --- FastAPI dependencies ---

def get_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Optional[str]:
    """Bearer header wins over the cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_optional_identity(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
) -> Optional[str]:
    if not token:
        return None
    return resolve_session(db, token)


def get_current_identity(identity: Optional[str] = Depends(get_optional_identity)) -> str:
    """FastAPI dependency — the verified email for this request, or 401."""
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email is required to continue. Please log in again.",
        )
    return identity

from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, CheckConstraint
from datetime import datetime
from .database import Base


class User(Base):
    """Entitlement record — one per verified email, created on first touch."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("calculations_used >= 0", name="ck_users_calculations_nonneg"),
        CheckConstraint("token_balance >= 0", name="ck_users_tokens_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    calculations_used = Column(Integer, nullable=False, default=0)
    subscription_active = Column(Boolean, nullable=False, default=False)
    subscription_expires = Column(DateTime, nullable=True)  # Only meaningful when active
    subscription_type = Column(String, nullable=True)  # 'monthly'
    token_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PaymentEvent(Base):
    """Processed provider transactions — the reference makes webhook redelivery a no-op."""
    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Minor units
    kind = Column(String, nullable=False)  # 'subscription' | 'tokens'
    tokens_credited = Column(Integer, default=0)
    metadata_json = Column(JSON, nullable=True)
    processed_at = Column(DateTime, default=datetime.utcnow)


class LoginSession(Base):
    """Server-side session — the client holds a signed token, we keep its hash."""
    __tablename__ = "login_sessions"

    id = Column(Integer, primary_key=True, index=True)
    token_hash = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=False, index=True)
    verified = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)

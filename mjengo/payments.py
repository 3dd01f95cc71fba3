"""
Paystack integration — outbound charge initialization and the inbound
charge.success webhook that activates entitlements.

Entitlement activation:
- monthly subscription if metadata says so or the amount equals the
  subscription price → active for SUBSCRIPTION_DAYS from now (replaces
  any earlier expiry, renewals don't stack)
- anything else is a token top-up → amount // TOKEN_UNIT_PRICE tokens

Redelivery is a no-op: each provider reference is recorded in
payment_events in the same transaction as the entitlement change.

Libraries: httpx for the Paystack REST API.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import entitlements, models
from .config import settings
from .email_checks import check_syntax
from .errors import BadEvent, InvalidEmail, PaymentProviderError, StorageFailure
from .schemas import PaystackEvent, PaystackMetadata

logger = logging.getLogger(__name__)

SUBSCRIPTION_PAYMENT_TYPE = "monthly_subscription"
SUBSCRIPTION_FIELD = "subscription_type"
SUBSCRIPTION_FIELD_VALUE = "monthly_unlimited"


# --- Outbound: Paystack REST client ---

@dataclass
class ChargeInit:
    authorization_url: str
    reference: str
    access_code: Optional[str] = None


class PaystackClient:
    """Thin wrapper over /transaction/initialize and /transaction/verify."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        if not self.secret_key:
            logger.error("PAYSTACK_SECRET_KEY not configured")
            raise PaymentProviderError()
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Content-Type": "application/json",
                },
                transport=self.transport,
            ) as client:
                response = client.request(method, f"{self.base_url}{path}", json=json)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Paystack %s %s returned %s: %s", method, path, e.response.status_code, e.response.text)
            raise PaymentProviderError()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Paystack %s %s failed: %s", method, path, e)
            raise PaymentProviderError()

        if not body.get("status"):
            logger.error("Paystack %s %s rejected: %s", method, path, body.get("message"))
            raise PaymentProviderError()
        return body.get("data") or {}

    def initialize_charge(
        self,
        email: str,
        amount: int,
        metadata: Optional[dict] = None,
        callback_url: Optional[str] = None,
    ) -> ChargeInit:
        """Start a transaction. `amount` is in minor units."""
        payload: dict[str, Any] = {
            "email": email,
            "amount": amount,
            "currency": settings.CURRENCY,
            "channels": ["card", "bank", "ussd", "qr", "mobile_money", "bank_transfer"],
        }
        if metadata:
            payload["metadata"] = metadata
        if callback_url:
            payload["callback_url"] = callback_url

        data = self._request("POST", "/transaction/initialize", json=payload)
        return ChargeInit(
            authorization_url=data["authorization_url"],
            reference=data["reference"],
            access_code=data.get("access_code"),
        )

    def verify(self, reference: str) -> dict:
        return self._request("GET", f"/transaction/verify/{reference}")


def subscription_metadata() -> dict:
    return {
        "custom_fields": [
            {
                "display_name": "Subscription Type",
                "variable_name": SUBSCRIPTION_FIELD,
                "value": SUBSCRIPTION_FIELD_VALUE,
            },
            {
                "display_name": "Service",
                "variable_name": "service",
                "value": "Construction Calculator",
            },
        ],
        "payment_type": SUBSCRIPTION_PAYMENT_TYPE,
    }


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Paystack signs the raw body with HMAC-SHA512 of the secret key."""
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


# --- Inbound: entitlement activation ---

@dataclass
class ActivationResult:
    handled: bool
    kind: Optional[str] = None  # 'subscription' | 'tokens'
    email: Optional[str] = None
    reference: Optional[str] = None
    duplicate: bool = False
    tokens_credited: int = 0
    subscription_expires: Optional[datetime] = None


def is_subscription_payment(amount: int, metadata: Optional[PaystackMetadata]) -> bool:
    if amount == settings.SUBSCRIPTION_PRICE:
        return True
    if metadata is None:
        return False
    if metadata.payment_type == SUBSCRIPTION_PAYMENT_TYPE:
        return True
    return any(
        f.variable_name == SUBSCRIPTION_FIELD and f.value == SUBSCRIPTION_FIELD_VALUE
        for f in metadata.custom_fields
    )


def parse_event(raw_event: Any) -> PaystackEvent:
    try:
        return PaystackEvent.model_validate(raw_event)
    except ValidationError as e:
        logger.warning("Rejected malformed payment event: %d validation errors", e.error_count())
        raise BadEvent()


def handle_payment_event(db: Session, raw_event: Any, now: Optional[datetime] = None) -> ActivationResult:
    """
    Apply a confirmed payment to the payer's entitlement record.

    Raises BadEvent for malformed payloads and StorageFailure when the
    write can't be committed — the provider retries on a non-2xx answer.
    """
    if not isinstance(raw_event, dict) or not isinstance(raw_event.get("event"), str):
        logger.warning("Rejected payment event without an event type")
        raise BadEvent()
    if raw_event["event"] != "charge.success":
        # Other event types carry different payloads
        logger.info("Ignoring Paystack event %s", raw_event["event"])
        return ActivationResult(handled=False)

    data = parse_event(raw_event).data
    try:
        email = check_syntax(data.customer.email)
    except InvalidEmail:
        logger.warning("Rejected payment event %s with invalid customer email", data.reference)
        raise BadEvent("Payment event has no valid customer email.")
    reference = data.reference
    now = now or datetime.utcnow()
    is_subscription = is_subscription_payment(data.amount, data.metadata)
    kind = "subscription" if is_subscription else "tokens"

    logger.info("Payment successful: reference=%s amount=%s email=%s kind=%s", reference, data.amount, email, kind)

    try:
        if db.query(models.PaymentEvent).filter(models.PaymentEvent.reference == reference).first():
            logger.info("Duplicate delivery of %s ignored", reference)
            return ActivationResult(handled=True, kind=kind, email=email, reference=reference, duplicate=True)

        user = entitlements.find_or_create(db, email)

        tokens = 0 if is_subscription else data.amount // settings.TOKEN_UNIT_PRICE
        db.add(models.PaymentEvent(
            reference=reference,
            email=email,
            amount=data.amount,
            kind=kind,
            tokens_credited=tokens,
            metadata_json=data.metadata.model_dump() if data.metadata else None,
            processed_at=now,
        ))
        db.flush()  # Claims the reference before touching the entitlement

        expires = None
        if is_subscription:
            expires = entitlements.activate_subscription(db, user, now)
        else:
            entitlements.credit_tokens(db, user, tokens)
        db.commit()

    except IntegrityError:
        # Same reference committed by a concurrent delivery
        db.rollback()
        logger.info("Duplicate delivery of %s ignored (concurrent)", reference)
        return ActivationResult(handled=True, kind=kind, email=email, reference=reference, duplicate=True)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record payment %s for %s", reference, email)
        raise StorageFailure()

    if is_subscription:
        logger.info("Monthly subscription activated for %s until %s", email, expires.isoformat())
    else:
        logger.info("%d tokens added for %s", tokens, email)

    return ActivationResult(
        handled=True,
        kind=kind,
        email=email,
        reference=reference,
        tokens_credited=tokens,
        subscription_expires=expires,
    )

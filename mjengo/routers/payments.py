"""
Payment endpoints — Paystack charge initialization, webhook, status.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from .. import entitlements
from ..config import settings
from ..database import get_db
from ..dependencies import get_paystack_client, require_admin
from ..email_checks import check_syntax
from ..payments import PaystackClient, handle_payment_event, subscription_metadata, verify_signature
from ..schemas import ChargeResponse, EntitlementStatus, PayRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


def _callback_url() -> str:
    return f"{settings.BASE_URL.rstrip('/')}/payment-success"


@router.get("/paystack/subscribe", response_model=ChargeResponse)
def subscribe(
    email: str = Query(...),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """Monthly subscription as a one-time charge at the subscription price."""
    email = check_syntax(email)
    charge = paystack.initialize_charge(
        email=email,
        amount=settings.SUBSCRIPTION_PRICE,
        metadata=subscription_metadata(),
        callback_url=_callback_url(),
    )
    logger.info("Subscription charge %s initialized for %s", charge.reference, email)
    return {"success": True, "authorization_url": charge.authorization_url, "reference": charge.reference}


@router.post("/pay", response_model=ChargeResponse)
def pay(request: PayRequest, paystack: PaystackClient = Depends(get_paystack_client)):
    """Token top-up. Amount is in major units; Paystack takes minor units."""
    email = check_syntax(request.email)
    charge = paystack.initialize_charge(
        email=email,
        amount=request.amount * 100,
        callback_url=_callback_url(),
    )
    return {"success": True, "authorization_url": charge.authorization_url, "reference": charge.reference}


@router.get("/pay/verify/{reference}")
def verify_payment(reference: str, paystack: PaystackClient = Depends(get_paystack_client)):
    data = paystack.verify(reference)
    return {
        "reference": reference,
        "status": data.get("status"),
        "amount": data.get("amount"),
        "currency": data.get("currency"),
    }


@router.get("/user/status", response_model=EntitlementStatus)
def user_status(email: str = Query(...), db: Session = Depends(get_db)):
    return entitlements.get_entitlement(db, email)


@router.post("/admin/users/{email}/reset-usage", response_model=EntitlementStatus,
             dependencies=[Depends(require_admin)])
def reset_usage(email: str, db: Session = Depends(get_db)):
    user = entitlements.reset_usage(db, email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return entitlements.to_status(user, email)


# Mounted without the /api prefix: this is the URL registered with Paystack
webhook_router = APIRouter(tags=["payments"])


@webhook_router.post("/webhook/paystack")
async def paystack_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Paystack charge events. Answers 200 once the entitlement is recorded;
    any non-2xx makes Paystack redeliver.
    """
    body = await request.body()

    if settings.PAYSTACK_SECRET_KEY:
        signature = request.headers.get("x-paystack-signature")
        if not verify_signature(body, signature, settings.PAYSTACK_SECRET_KEY):
            logger.warning("Rejected webhook with invalid signature")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    elif not settings.is_development:
        # Unsigned events are only accepted in development
        logger.error("PAYSTACK_SECRET_KEY not configured, rejecting webhook")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment webhook not configured",
        )

    try:
        payload = json.loads(body)
    except ValueError:
        payload = None

    result = await run_in_threadpool(handle_payment_event, db, payload)
    return {"status": "ok", "handled": result.handled, "duplicate": result.duplicate}

"""
Error taxonomy for the verification, access and payment paths.

Every error is recoverable by the caller. `reason` is safe to show to the
user; internal detail stays in the logs.
"""

from typing import Optional


class EntitlementError(Exception):
    """Base class — subclasses set a stable code, reason and HTTP status."""

    code = "EntitlementError"
    reason = "Something went wrong. Please try again."
    status_code = 400

    def __init__(self, reason: Optional[str] = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.reason}


# --- Send path ---

class InvalidEmail(EntitlementError):
    code = "InvalidEmail"
    reason = "Invalid email format. Please enter a valid email address (e.g., yourname@gmail.com)."
    status_code = 422


class DisposableDomain(EntitlementError):
    code = "DisposableDomain"
    reason = (
        "Temporary or disposable email addresses are not allowed. "
        "Please use a permanent email address from a trusted provider."
    )
    status_code = 422


class UnknownDomain(EntitlementError):
    code = "UnknownDomain"
    reason = "This email domain does not exist or does not accept email. Please use a different address."
    status_code = 422


class RateLimited(EntitlementError):
    code = "RateLimited"
    reason = "Too many verification attempts. Please try again in one hour."
    status_code = 429


class NotifierUnavailable(EntitlementError):
    code = "NotifierUnavailable"
    reason = "Failed to send verification email. Please try again."
    status_code = 503


# --- Verify path ---

class NoChallenge(EntitlementError):
    code = "NoChallenge"
    reason = "No verification code found for this email. Please request a new one."


class Expired(EntitlementError):
    code = "Expired"
    reason = "Verification code has expired. Please request a new one."


class TooManyAttempts(EntitlementError):
    code = "TooManyAttempts"
    reason = "Too many failed attempts. Please request a new verification code."
    status_code = 429


class Mismatch(EntitlementError):
    code = "Mismatch"
    reason = "Invalid verification code. Please try again."


# --- Activator ---

class BadEvent(EntitlementError):
    code = "BadEvent"
    reason = "Malformed payment event."


class StorageFailure(EntitlementError):
    code = "StorageFailure"
    reason = "Could not record the payment. It will be retried."
    status_code = 500


class PaymentProviderError(EntitlementError):
    """Paystack unreachable or returned an error."""
    code = "PaymentProviderError"
    reason = "Payment initialization failed. Please try again."
    status_code = 502

"""
Identity verification — one-time email codes.

request_code: syntax → rate limit → domain checks → new code → notifier.
verify_code: one-shot. A challenge is consumed on success, expiry, or
when its failed-attempt counter reaches the cap.

Challenge and rate-limit state live in an injectable ChallengeStore.
Network I/O (MX lookup, email delivery) never runs under the store lock.
"""

import hmac
import logging
import secrets
import time
from typing import Callable, Optional

from .challenge_store import ChallengeStore, InMemoryChallengeStore
from .config import settings
from .email_checks import check_domain, check_syntax, normalize_email, resolve_mx
from .errors import (
    Expired,
    Mismatch,
    NoChallenge,
    NotifierUnavailable,
    RateLimited,
    TooManyAttempts,
)
from .notifier import Notifier

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60 * 60


def generate_code() -> str:
    """Random 6-digit code, never starting with 0."""
    return str(100000 + secrets.randbelow(900000))


def _challenge_key(email: str) -> str:
    return f"challenge:{email}"


def _rate_key(email: str) -> str:
    return f"code_requests:{email}"


class IdentityVerifier:
    def __init__(
        self,
        notifier: Notifier,
        store: Optional[ChallengeStore] = None,
        resolver: Callable[[str], list[str]] = resolve_mx,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_code,
    ):
        self.notifier = notifier
        self.store = store if store is not None else InMemoryChallengeStore(clock=clock)
        self.resolver = resolver
        self.clock = clock
        self.code_factory = code_factory
        self.ttl_seconds = settings.CODE_TTL_MINUTES * 60
        self.max_attempts = settings.CODE_MAX_ATTEMPTS
        self.requests_per_hour = settings.CODE_REQUESTS_PER_HOUR

    def request_code(self, email: str) -> str:
        """Issue and deliver a new code. Returns the normalized identity."""
        email = check_syntax(email)

        if not self.store.hit(_rate_key(email), RATE_LIMIT_WINDOW_SECONDS, self.requests_per_hour):
            logger.warning("Code request rate limit hit for %s", email)
            raise RateLimited()

        check_domain(email, self.resolver)

        code = self.code_factory()
        challenge = {"code": code, "created_at": self.clock(), "attempts": 0}
        # Overwrites any unconsumed challenge, so only the newest code is valid.
        # Kept past its lifetime so a late verify reports Expired, not NoChallenge.
        self.store.set(_challenge_key(email), challenge, self.ttl_seconds * 2)

        if not self.notifier.send(email, code):
            self.store.delete(_challenge_key(email))
            raise NotifierUnavailable()

        logger.info("Verification code sent to %s", email)
        return email

    def verify_code(self, email: str, code: str) -> str:
        """Consume the challenge. Returns the verified identity or raises."""
        email = normalize_email(email)
        key = _challenge_key(email)
        challenge = self.store.get(key)
        if challenge is None:
            raise NoChallenge()

        if self.clock() - challenge["created_at"] > self.ttl_seconds:
            self.store.delete(key)
            raise Expired()

        if hmac.compare_digest(str(challenge["code"]).encode(), str(code or "").strip().encode()):
            if not self.store.delete(key):
                # Another request consumed it first
                raise NoChallenge()
            logger.info("Email verified: %s", email)
            return email

        attempts = self.store.incr(key, "attempts")
        if attempts is None:
            # Consumed or expired concurrently
            raise NoChallenge()
        if attempts >= self.max_attempts:
            self.store.delete(key)
            logger.warning("Verification attempts exhausted for %s", email)
            raise TooManyAttempts()
        raise Mismatch()

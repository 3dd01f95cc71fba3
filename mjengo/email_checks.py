"""
Email deliverability checks run before a verification code is issued.

Order: syntax → disposable/deny-listed domain → MX lookup. DNS itself is
unreliable infrastructure, so a lookup that fails for reasons other than
"domain doesn't exist" falls back to a list of well-known providers
instead of rejecting outright.

Libraries: dnspython for MX resolution.
"""

import logging
import re
from typing import Callable

import dns.exception
import dns.resolver

from .config import settings
from .errors import DisposableDomain, InvalidEmail, UnknownDomain

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DISPOSABLE_DOMAINS = frozenset({
    "tempmail.com", "guerrillamail.com", "mailinator.com", "10minutemail.com",
    "throwaway.com", "fakeinbox.com", "yopmail.com", "trashmail.com",
    "disposable.com", "temp-mail.org", "getairmail.com", "sharklasers.com",
    "maildrop.cc", "tempail.com", "fake-mail.com", "throwawaymail.com",
    "tempmail.net", "trashmail.net", "dispostable.com", "mailmetrash.com",
    "tmpmail.org", "mailnesia.com", "mohmal.com", "fake-box.com",
    "mail-temp.com", "tempinbox.com", "mail-temporaire.com",
    # Test/placeholder domains, not real mailboxes
    "example.com", "test.com", "test.org", "example.org", "example.net",
    "test.net", "fake.com", "invalid.com", "localhost.com", "domain.com",
    "email.com",
})

# Accepted when the MX lookup itself can't be completed. Matches exactly or as a suffix.
KNOWN_PROVIDERS = (
    "gmail.com", "googlemail.com", "yahoo.com", "ymail.com", "rocketmail.com",
    "outlook.com", "hotmail.com", "live.com", "msn.com",
    "icloud.com", "me.com", "mac.com",
    "protonmail.com", "proton.me",
    "aol.com", "zoho.com", "mail.com", "gmx.com", "yandex.com",
    # Kenyan second-level domains
    "co.ke", "ac.ke", "go.ke", "ne.ke", "or.ke", "sc.ke", "me.ke",
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def _extra_disposable() -> set[str]:
    return {d.strip().lower() for d in settings.DISPOSABLE_DOMAINS_EXTRA.split(",") if d.strip()}


def is_disposable_domain(domain: str) -> bool:
    return domain in DISPOSABLE_DOMAINS or domain in _extra_disposable()


def is_known_provider(domain: str) -> bool:
    return any(domain == p or domain.endswith("." + p) for p in KNOWN_PROVIDERS)


def resolve_mx(domain: str) -> list[str]:
    """Return MX hostnames for a domain. Raises dnspython exceptions on failure."""
    answer = dns.resolver.resolve(domain, "MX", lifetime=5.0)
    return [str(rdata.exchange).rstrip(".") for rdata in answer]


def check_mx(domain: str, resolver: Callable[[str], list[str]] = resolve_mx) -> None:
    """Raise UnknownDomain unless the domain accepts mail (or is a known provider when DNS fails)."""
    try:
        records = resolver(domain)
    except dns.resolver.NXDOMAIN:
        logger.info("MX check: domain %s does not exist", domain)
        raise UnknownDomain(
            "This email domain does not exist. Please check for typos or use a different email."
        )
    except dns.resolver.NoAnswer:
        logger.info("MX check: domain %s has no MX records", domain)
        raise UnknownDomain(
            "This domain exists but does not accept emails. Please use a different email address."
        )
    except dns.exception.DNSException as e:
        logger.warning("MX check failed for %s (%s), using known-provider list", domain, type(e).__name__)
        if not is_known_provider(domain):
            raise UnknownDomain(
                "Unable to verify this email domain. Please use a well-known email provider "
                "like Gmail, Outlook, or Yahoo."
            )
        return

    if not records:
        raise UnknownDomain(
            "This email domain does not accept emails. Please use a different email address."
        )
    logger.debug("MX records found for %s: %d", domain, len(records))


def check_syntax(email: str) -> str:
    """Returns the normalized address or raises InvalidEmail."""
    email = normalize_email(email)
    if not EMAIL_RE.match(email):
        raise InvalidEmail()
    return email


def check_domain(email: str, resolver: Callable[[str], list[str]] = resolve_mx) -> None:
    domain = email_domain(email)
    if is_disposable_domain(domain):
        raise DisposableDomain()
    if settings.EMAIL_MX_CHECK:
        check_mx(domain, resolver)

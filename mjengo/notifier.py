"""
Verification code delivery.

SmtpNotifier sends the code by email. When SMTP isn't configured the
LogNotifier stands in — development only, it writes the code to the log.
"""

import logging
import smtplib
import socket
from email.message import EmailMessage
from typing import Protocol

from .config import settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, identity: str, code: str) -> bool:
        """Deliver a code. Returns False on failure, never raises."""
        ...


def _render_body(code: str, ttl_minutes: int) -> str:
    return (
        "Hello!\n\n"
        "Please use the verification code below to verify your email address "
        "for the Construction Calculator:\n\n"
        f"    {code}\n\n"
        f"This code will expire in {ttl_minutes} minutes.\n\n"
        "If you didn't request this verification, please ignore this email.\n"
    )


class SmtpNotifier:
    def __init__(self, host: str, port: int, username: str, password: str, from_addr: str):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_addr = from_addr

    def send(self, identity: str, code: str) -> bool:
        msg = EmailMessage()
        msg["Subject"] = "Your Construction Calculator Verification Code"
        msg["From"] = self.from_addr
        msg["To"] = identity
        msg.set_content(_render_body(code, settings.CODE_TTL_MINUTES))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=15) as server:
                server.ehlo()
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except socket.gaierror as e:
            logger.error("SMTP host lookup failed for %s: %s", self.host, e)
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send verification email to %s: %s", identity, e)
            return False

        logger.info("Verification email sent to %s", identity)
        return True


class LogNotifier:
    """Writes the code to the log instead of sending it."""

    def send(self, identity: str, code: str) -> bool:
        logger.warning("SMTP not configured — verification code for %s: %s", identity, code)
        return True


class DisabledNotifier:
    def send(self, identity: str, code: str) -> bool:
        logger.error("Email transporter not configured — cannot send verification email")
        return False


def build_notifier() -> Notifier:
    """Pick a notifier from settings."""
    if settings.SMTP_HOST:
        return SmtpNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            from_addr=settings.EMAIL_FROM,
        )
    if settings.is_development:
        return LogNotifier()
    return DisabledNotifier()

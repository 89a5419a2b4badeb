"""Delivery channels — hand a freshly issued reset code to its owner."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage

import aiosmtplib

from reset_otp.config import settings
from reset_otp.security import mask_identity

logger = logging.getLogger(__name__)


class DeliveryChannel(ABC):
    """Abstract out-of-band channel (e-mail, SMS, …) for reset codes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable channel name (used in logs)."""

    @abstractmethod
    async def send(self, identity: str, code: str, *, development: bool = False) -> bool:
        """Deliver *code* to *identity*.

        *development* is set when the issuing service runs in development
        mode; only then may a channel expose the code outside delivery.

        Returns ``True`` on success.  Implementations may also raise;
        the caller treats an exception like a ``False`` return.
        """


class LogDelivery(DeliveryChannel):
    """Writes the code to the application log instead of sending it.

    Development-only: outside development mode the code is withheld and
    the send reports failure.
    """

    @property
    def name(self) -> str:
        return "log"

    async def send(self, identity: str, code: str, *, development: bool = False) -> bool:
        if not development:
            logger.error(
                "Log delivery is development-only; reset code for %s withheld",
                mask_identity(identity),
            )
            return False
        logger.info(
            "📧 Password reset code for %s: %s  (not sent)", mask_identity(identity), code
        )
        return True


class EmailDelivery(DeliveryChannel):
    """Sends the reset code by e-mail using the configured SMTP server."""

    def __init__(self, ttl_minutes: int | None = None) -> None:
        self._ttl_minutes = ttl_minutes or settings.otp_ttl_seconds // 60

    @property
    def name(self) -> str:
        return "smtp"

    def build_message(self, to_email: str, code: str) -> EmailMessage:
        """Compose the password-reset e-mail (plain text with HTML alternative)."""
        msg = EmailMessage()
        msg["Subject"] = "Password Reset Code"
        msg["From"] = f"{settings.app_name} <{settings.email_from}>"
        msg["To"] = to_email
        msg.set_content(
            "Password Reset Request\n\n"
            f"Your reset code is: {code}\n\n"
            f"This code will expire in {self._ttl_minutes} minutes.\n"
        )
        msg.add_alternative(
            f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
              <h1 style="color: #333; text-align: center;">Password Reset Request</h1>
              <p style="color: #666; font-size: 16px;">Your reset code is:</p>
              <div style="background: #f4f4f4; padding: 20px; text-align: center; margin: 20px 0; border-radius: 8px;">
                <h2 style="color: #333; letter-spacing: 5px; margin: 0;">{code}</h2>
              </div>
              <p style="color: #666; font-size: 14px;">This code will expire in {self._ttl_minutes} minutes.</p>
            </div>
            """,
            subtype="html",
        )
        return msg

    async def send(self, identity: str, code: str, *, development: bool = False) -> bool:
        if "@" not in identity:
            logger.warning(
                "Cannot e-mail a reset code to non-email identity %s", mask_identity(identity)
            )
            return False

        msg = self.build_message(identity, code)
        logger.info("Sending reset code email to %s", mask_identity(identity))

        await aiosmtplib.send(
            msg,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            start_tls=True,
        )

        logger.info("Reset code email sent to %s", mask_identity(identity))
        return True


def build_delivery_channel() -> DeliveryChannel:
    """Return the channel selected by ``settings.delivery_backend``."""
    if settings.delivery_backend == "smtp":
        return EmailDelivery()
    if not settings.is_development:
        logger.warning(
            "Log delivery selected in %s mode; reset codes will not be delivered",
            settings.reset_mode,
        )
    return LogDelivery()

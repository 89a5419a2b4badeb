"""Password-reset service — issues and verifies one-time reset codes.

Flow
----
1. ``request_code`` generates a 6-digit code for an identity (e-mail or
   phone), stores it, replacing any earlier code, and hands it to the
   delivery channel.
2. The user obtains the code out of band.
3. ``verify_code`` checks the submitted code against expiry and attempt
   limits and, on success, deletes the record and returns a single-use
   :class:`ResetAuthorization`.
4. ``reset_password`` combines validation, verification and the password
   update in the user store.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from reset_otp.config import settings
from reset_otp.otp.codes import generate_code
from reset_otp.otp.exceptions import (
    AttemptsExhausted,
    AuthorizationUsed,
    CodeExpired,
    CodeMismatch,
    CodeNotFound,
    DeliveryFailure,
    IdentityNotFound,
    ValidationError,
)
from reset_otp.otp.store import BaseOtpStore, OtpRecord
from reset_otp.security import mask_identity
from reset_otp.services.delivery import DeliveryChannel

if TYPE_CHECKING:
    from reset_otp.database.repository import UserRepository

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


@dataclass
class IssueResult:
    """Outcome of ``request_code``.

    ``code`` is only populated in development mode.
    """

    identity: str
    delivered: bool
    code: str | None = None


@dataclass
class ResetAuthorization:
    """Permission to change the password of *identity*, usable once."""

    identity: str
    granted_at: float
    _consumed: bool = field(default=False, repr=False)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self) -> str:
        """Mark the authorization as used and return its identity."""
        if self._consumed:
            raise AuthorizationUsed()
        self._consumed = True
        return self.identity


def normalize_identity(identity: str | None) -> str:
    """Strip whitespace and lower-case e-mail addresses."""
    identity = (identity or "").strip()
    if not identity:
        raise ValidationError("Email or phone is required")
    if "@" in identity:
        identity = identity.lower()
    return identity


class PasswordResetService:
    """Issuer and verifier of password-reset codes."""

    def __init__(
        self,
        store: BaseOtpStore,
        delivery: DeliveryChannel,
        users: UserRepository | None = None,
        *,
        mode: Literal["development", "production"] | None = None,
        ttl_seconds: float | None = None,
        max_attempts: int | None = None,
        require_known_identity: bool | None = None,
        delivery_timeout: float | None = None,
        min_password_length: int | None = None,
        code_generator: Callable[[], str] = generate_code,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._users = users
        self._mode = mode or settings.reset_mode
        self._ttl = settings.otp_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._max_attempts = (
            settings.otp_max_attempts if max_attempts is None else max_attempts
        )
        self._require_known = (
            settings.require_known_identity
            if require_known_identity is None
            else require_known_identity
        )
        self._delivery_timeout = (
            settings.delivery_timeout_seconds
            if delivery_timeout is None
            else delivery_timeout
        )
        self._min_password_length = (
            settings.min_password_length
            if min_password_length is None
            else min_password_length
        )
        self._generate = code_generator
        self._clock = clock

    @property
    def development_mode(self) -> bool:
        return self._mode == "development"

    # ── Issuer ───────────────────────────────────────────

    async def request_code(self, identity: str | None) -> IssueResult:
        """Issue a fresh code for *identity* and attempt delivery.

        Raises ``IdentityNotFound`` when existence checks are enabled and
        no account matches; ``DeliveryFailure`` in production mode when the
        channel fails (the issued record is kept).
        """
        identity = normalize_identity(identity)

        if self._require_known and self._users is not None:
            if await self._users.find_by_identity(identity) is None:
                logger.info("Reset requested for unknown identity %s", mask_identity(identity))
                raise IdentityNotFound()

        code = self._generate()
        async with self._store.locked(identity):
            self._store.set(
                OtpRecord(identity=identity, code=code, issued_at=self._clock())
            )
        if self.development_mode:
            logger.info("Reset code issued for %s: %s", mask_identity(identity), code)
        else:
            logger.info("Reset code issued for %s", mask_identity(identity))

        delivered = await self._deliver(identity, code)
        if not delivered and not self.development_mode:
            raise DeliveryFailure()

        return IssueResult(
            identity=identity,
            delivered=delivered,
            code=code if self.development_mode else None,
        )

    async def _deliver(self, identity: str, code: str) -> bool:
        """Send *code* through the channel, bounded by the delivery timeout."""
        target = mask_identity(identity)
        try:
            delivered = await asyncio.wait_for(
                self._delivery.send(identity, code, development=self.development_mode),
                timeout=self._delivery_timeout,
            )
        except TimeoutError:
            logger.error(
                "Delivery via %s timed out after %.1fs for %s",
                self._delivery.name,
                self._delivery_timeout,
                target,
            )
            return False
        except Exception:
            logger.exception("Delivery via %s failed for %s", self._delivery.name, target)
            return False

        if not delivered:
            logger.error("Delivery via %s rejected code for %s", self._delivery.name, target)
        return bool(delivered)

    # ── Verifier ─────────────────────────────────────────

    async def verify_code(
        self, identity: str | None, submitted_code: str | None
    ) -> ResetAuthorization:
        """Check *submitted_code* for *identity*.

        Checks run in order: missing record, expiry, attempt limit, code
        comparison.  Only a mismatch keeps the record (and counts the
        attempt); every other outcome deletes it.
        """
        identity = normalize_identity(identity)
        submitted_code = (submitted_code or "").strip()

        async with self._store.locked(identity):
            record = self._store.get(identity)
            if record is None:
                logger.info("No outstanding reset code for %s", mask_identity(identity))
                raise CodeNotFound()

            now = self._clock()
            if record.is_expired(self._ttl, now):
                self._store.delete(identity)
                logger.info("Reset code expired for %s", mask_identity(identity))
                raise CodeExpired()

            if record.attempts >= self._max_attempts:
                self._store.delete(identity)
                logger.warning("Too many failed attempts for %s", mask_identity(identity))
                raise AttemptsExhausted()

            if not hmac.compare_digest(
                submitted_code.encode("utf-8"), record.code.encode("utf-8")
            ):
                record.attempts += 1
                logger.info(
                    "Invalid reset code for %s (attempt %d/%d)",
                    mask_identity(identity),
                    record.attempts,
                    self._max_attempts,
                )
                raise CodeMismatch()

            self._store.delete(identity)

        logger.info("Reset code verified for %s", mask_identity(identity))
        return ResetAuthorization(identity=identity, granted_at=now)

    # ── Verify + update ──────────────────────────────────

    def validate_new_password(self, new_password: str | None) -> str:
        if not new_password:
            raise ValidationError("Email, code, and new password are required")
        if len(new_password) < self._min_password_length:
            raise ValidationError(
                f"Password must be at least {self._min_password_length} characters"
            )
        if len(new_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
            )
        return new_password

    async def reset_password(
        self, identity: str | None, code: str | None, new_password: str | None
    ) -> ResetAuthorization:
        """Verify *code* and, on success, replace the user's password."""
        if not (identity or "").strip() or not (code or "").strip():
            raise ValidationError("Email, code, and new password are required")
        new_password = self.validate_new_password(new_password)

        authorization = await self.verify_code(identity, code)
        await self.apply(authorization, new_password)
        return authorization

    async def apply(self, authorization: ResetAuthorization, new_password: str) -> bool:
        """Spend *authorization* on a password update in the user store."""
        identity = authorization.consume()
        if self._users is None:
            logger.warning(
                "No user store wired; password for %s not persisted", mask_identity(identity)
            )
            return False

        updated = await self._users.update_password(identity, new_password)
        if not updated:
            logger.warning("Verified reset for %s matched no account", mask_identity(identity))
        return updated

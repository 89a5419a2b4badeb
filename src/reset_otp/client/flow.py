"""Reset flow — the client-side state machine driving a password reset."""

from __future__ import annotations

import logging
import math
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from reset_otp.client.api import ResetAPIClient
from reset_otp.config import settings
from reset_otp.security import mask_identity

logger = logging.getLogger(__name__)

# Possible flow states
STATE_ENTER_IDENTITY = "enter_identity"
STATE_AWAITING_CODE = "awaiting_code"
STATE_VERIFIED = "verified"
STATE_FAILED = "failed"

# Server reasons after which the same code can never succeed
TERMINAL_REASONS = frozenset({"invalid_or_expired", "too_many_attempts"})

_CODE_PATTERN = re.compile(r"^[0-9]{6}$")


@dataclass
class FlowResponse:
    """Value object returned after every step of the flow."""

    state: str
    message: str
    ok: bool = True
    otp: str | None = None


class ResetFlow:
    """Drives the two-step reset: request a code, then submit it.

    Flow
    ----
    1. ``ENTER_IDENTITY``: the user gives an email or phone; the code is
       requested and a resend countdown starts.
    2. ``AWAITING_CODE``: the user submits the code and a new password.
       A wrong code keeps the flow here.  An expired or exhausted code
       moves it to ``FAILED``, from where a new code must be requested.
    3. ``VERIFIED``: the server accepted the code and stored the password.

    ``cancel`` may be called at any point; the server record simply
    expires on its own.
    """

    def __init__(
        self,
        api: ResetAPIClient,
        *,
        resend_cooldown: float | None = None,
        min_password_length: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self._cooldown = (
            settings.resend_cooldown_seconds if resend_cooldown is None else resend_cooldown
        )
        self._min_password_length = (
            settings.min_password_length
            if min_password_length is None
            else min_password_length
        )
        self._clock = clock
        self.state = STATE_ENTER_IDENTITY
        self.identity: str | None = None
        self.last_error: str | None = None
        self._resend_at: float = 0.0

    # ── Resend countdown ─────────────────────────────────

    @property
    def seconds_until_resend(self) -> int:
        """Whole seconds left before ``resend`` is allowed (0 when allowed)."""
        if self.state != STATE_AWAITING_CODE:
            return 0
        remaining = self._resend_at - self._clock()
        return max(0, math.ceil(remaining))

    @property
    def can_resend(self) -> bool:
        return self.state == STATE_AWAITING_CODE and self.seconds_until_resend == 0

    # ── Steps ────────────────────────────────────────────

    async def request_code(self, identity: str) -> FlowResponse:
        """Request a reset code for *identity* and start waiting for it."""
        if self.state not in (STATE_ENTER_IDENTITY, STATE_FAILED):
            return self._fail("A reset is already in progress.")

        identity = identity.strip()
        if not identity:
            return self._fail("Please enter your email or phone number.")

        result = await self._api.request_code(identity)
        if not result.ok:
            logger.info(
                "Reset code request failed for %s: %s", mask_identity(identity), result.message
            )
            return self._fail(result.message)

        self.identity = identity
        self.state = STATE_AWAITING_CODE
        self.last_error = None
        self._resend_at = self._clock() + self._cooldown
        logger.info("Reset code requested for %s", mask_identity(identity))
        return FlowResponse(
            state=self.state,
            message=(
                f"A password reset code has been sent to {mask_identity(identity)}.\n"
                "Enter the 6-digit code and your new password."
            ),
            otp=result.otp,
        )

    async def resend(self) -> FlowResponse:
        """Request a fresh code once the countdown has run out."""
        if self.state != STATE_AWAITING_CODE:
            return self._fail("There is no reset in progress.")
        if not self.can_resend:
            return self._fail(f"Resend in {self.seconds_until_resend}s")

        result = await self._api.request_code(self.identity)
        if not result.ok:
            return self._fail(result.message)

        self._resend_at = self._clock() + self._cooldown
        self.last_error = None
        logger.info("Reset code re-sent for %s", mask_identity(self.identity))
        return FlowResponse(
            state=self.state,
            message="A new code has been sent. Earlier codes no longer work.",
            otp=result.otp,
        )

    async def submit(
        self, code: str, new_password: str, confirm_password: str | None = None
    ) -> FlowResponse:
        """Submit the code and new password for verification."""
        if self.state != STATE_AWAITING_CODE:
            return self._fail("Request a reset code first.")

        code = code.strip()
        if not _CODE_PATTERN.match(code):
            return self._fail("Code must be 6 digits.")
        if len(new_password) < self._min_password_length:
            return self._fail(
                f"Password must be at least {self._min_password_length} characters."
            )
        if confirm_password is not None and confirm_password != new_password:
            return self._fail("Passwords do not match.")

        result = await self._api.verify(self.identity, code, new_password)
        if result.ok:
            self.state = STATE_VERIFIED
            self.last_error = None
            logger.info("Password reset completed for %s", mask_identity(self.identity))
            return FlowResponse(state=self.state, message="Password reset successfully!")

        if result.reason in TERMINAL_REASONS:
            self.state = STATE_FAILED
            logger.info(
                "Reset for %s can no longer succeed: %s",
                mask_identity(self.identity),
                result.reason,
            )
            return self._fail(f"{result.message}. Please request a new code.")

        return self._fail(result.message)

    def cancel(self) -> FlowResponse:
        """Abandon the flow; nothing needs cleaning up on the server."""
        logger.info("Reset flow cancelled for %s", mask_identity(self.identity))
        self.state = STATE_ENTER_IDENTITY
        self.identity = None
        self.last_error = None
        self._resend_at = 0.0
        return FlowResponse(state=self.state, message="Password reset cancelled.")

    # ── Private helpers ──────────────────────────────────

    def _fail(self, message: str) -> FlowResponse:
        self.last_error = message
        return FlowResponse(state=self.state, message=message, ok=False)

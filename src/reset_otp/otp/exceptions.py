"""Errors raised by the reset-code issuer and verifier.

Every error carries a user-facing ``message``, a machine-readable
``reason`` and the HTTP ``status_code`` the API answers with.
"""

from __future__ import annotations

INVALID_OR_EXPIRED = "Invalid or expired reset code"


class ResetError(Exception):
    """Base class for all password-reset failures."""

    status_code: int = 400
    reason: str = "reset_failed"
    default_message: str = "Failed to reset password"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ResetError):
    reason = "invalid_request"
    default_message = "Invalid request"


class CodeNotFound(ResetError):
    # Shares message and reason with CodeExpired so callers cannot tell
    # an unknown identity from a stale one.
    reason = "invalid_or_expired"
    default_message = INVALID_OR_EXPIRED


class CodeExpired(ResetError):
    reason = "invalid_or_expired"
    default_message = INVALID_OR_EXPIRED


class AttemptsExhausted(ResetError):
    reason = "too_many_attempts"
    default_message = "Too many failed attempts"


class CodeMismatch(ResetError):
    reason = "invalid_code"
    default_message = "Invalid reset code"


class AuthorizationUsed(ResetError):
    reason = "authorization_used"
    default_message = "Reset authorization has already been used"


class IdentityNotFound(ResetError):
    status_code = 404
    reason = "identity_not_found"
    default_message = "No account found for this email or phone"


class DeliveryFailure(ResetError):
    status_code = 500
    reason = "delivery_failed"
    default_message = "Failed to send reset code"

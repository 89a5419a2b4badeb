"""Reset API client — async HTTP client for the password-reset endpoints.

Wraps the two calls the reset flow makes.  ``base_url`` points at the
``/api`` root of a running server; tests pass an ``httpx`` transport to
talk to the ASGI app in process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from reset_otp.config import settings

logger = logging.getLogger(__name__)

NETWORK_ERROR = "network_error"


@dataclass
class APIResult:
    """Lightweight value object returned by every client call."""

    ok: bool
    message: str
    reason: str | None = None
    otp: str | None = None


class ResetAPIClient:
    """Async HTTP wrapper around the password-reset API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @staticmethod
    def _identity_field(identity: str) -> str:
        return "email" if "@" in identity else "phone"

    async def _post(self, path: str, payload: dict, fallback: str) -> APIResult:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.exception("Reset API request error: %s", exc)
            return APIResult(
                ok=False, message=f"{fallback}. Please try again.", reason=NETWORK_ERROR
            )

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code == 200:
            return APIResult(
                ok=True,
                message=data.get("message", ""),
                otp=data.get("otp"),
            )

        logger.error("Reset API call %s failed: %s %s", path, resp.status_code, resp.text)
        return APIResult(
            ok=False,
            message=data.get("error") or fallback,
            reason=data.get("reason"),
        )

    # ── Reset calls ──────────────────────────────────────

    async def request_code(self, identity: str) -> APIResult:
        """Ask the server to issue a reset code for *identity*."""
        return await self._post(
            "/reset-password/request",
            {self._identity_field(identity): identity},
            "Failed to send reset code",
        )

    async def verify(self, identity: str, code: str, new_password: str) -> APIResult:
        """Submit *code* together with the new password."""
        return await self._post(
            "/reset-password/verify",
            {
                self._identity_field(identity): identity,
                "code": code,
                "newPassword": new_password,
            },
            "Failed to reset password",
        )

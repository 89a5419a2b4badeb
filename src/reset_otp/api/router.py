"""Password-reset API router.

Endpoints
---------
POST /api/reset-password/request   → issue a reset code for an email/phone
POST /api/reset-password/verify    → check the code and set a new password
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from reset_otp.database.engine import get_session
from reset_otp.database.repository import UserRepository
from reset_otp.otp.exceptions import ResetError
from reset_otp.otp.service import PasswordResetService
from reset_otp.otp.store import BaseOtpStore, InMemoryOtpStore
from reset_otp.security import mask_identity
from reset_otp.services.delivery import DeliveryChannel, build_delivery_channel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reset-password", tags=["password-reset"])

# Shared OTP store and delivery channel (in-memory singletons)
_otp_store = InMemoryOtpStore()
_delivery = build_delivery_channel()


# ── Request / response models ────────────────────────────

class ResetCodeRequest(BaseModel):
    email: str | None = None
    phone: str | None = None

    @property
    def identity(self) -> str | None:
        return self.email or self.phone


class ResetCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    development_mode: bool | None = Field(default=None, alias="developmentMode")
    otp: str | None = None


class ResetVerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone: str | None = None
    code: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword")

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_text(cls, value):
        # Clients may send the code as a JSON number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def identity(self) -> str | None:
        return self.email or self.phone


class MessageResponse(BaseModel):
    message: str


# ── Dependencies ─────────────────────────────────────────

def get_otp_store() -> BaseOtpStore:
    return _otp_store


def get_delivery_channel() -> DeliveryChannel:
    return _delivery


async def get_reset_service(
    db_session: AsyncSession = Depends(get_session),
    store: BaseOtpStore = Depends(get_otp_store),
    delivery: DeliveryChannel = Depends(get_delivery_channel),
) -> PasswordResetService:
    """Build a reset service bound to this request's database session."""
    return PasswordResetService(store, delivery, UserRepository(db_session))


# ── Endpoints ────────────────────────────────────────────

@router.post(
    "/request",
    response_model=ResetCodeResponse,
    response_model_exclude_none=True,
)
async def request_reset_code(
    body: ResetCodeRequest,
    service: PasswordResetService = Depends(get_reset_service),
):
    """Issue a reset code for the given email or phone.

    In development mode the code is echoed back in the response instead
    of relying on delivery.
    """
    logger.info("Password reset requested for %s", mask_identity(body.identity))
    result = await service.request_code(body.identity)

    if service.development_mode:
        message = (
            "Reset code sent successfully"
            if result.delivered
            else "Reset code generated (email sending failed)"
        )
        return ResetCodeResponse(message=message, development_mode=True, otp=result.code)

    return ResetCodeResponse(message="Reset code sent successfully")


@router.post("/verify", response_model=MessageResponse)
async def verify_reset_code(
    body: ResetVerifyRequest,
    service: PasswordResetService = Depends(get_reset_service),
    db_session: AsyncSession = Depends(get_session),
):
    """Check the reset code and, on success, store the new password."""
    logger.info(
        "Password reset verification attempt for %s", mask_identity(body.identity)
    )
    await service.reset_password(body.identity, body.code, body.new_password)
    await db_session.commit()
    logger.info("Password reset successful for %s", mask_identity(body.identity))
    return MessageResponse(message="Password reset successful")


# ── Error translation ────────────────────────────────────

async def _reset_error_handler(request: Request, exc: ResetError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "reason": exc.reason},
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "reason": "invalid_request"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Answer reset failures and malformed bodies with ``{"error": ...}``."""
    app.add_exception_handler(ResetError, _reset_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

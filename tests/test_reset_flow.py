"""Tests for the ResetFlow — verifies the client-side state machine."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from reset_otp.client.api import NETWORK_ERROR, APIResult, ResetAPIClient
from reset_otp.client.flow import (
    STATE_AWAITING_CODE,
    STATE_ENTER_IDENTITY,
    STATE_FAILED,
    STATE_VERIFIED,
    ResetFlow,
)


@pytest.fixture
def api():
    """Mocked reset API — never talks to a server."""
    mock = AsyncMock(spec=ResetAPIClient)
    mock.request_code.return_value = APIResult(
        ok=True, message="Reset code sent successfully", otp="123456"
    )
    mock.verify.return_value = APIResult(ok=True, message="Password reset successful")
    return mock


@pytest.fixture
def flow(api, clock):
    return ResetFlow(api, resend_cooldown=60, min_password_length=6, clock=clock)


# ──────────────────────────────────────────────────────────
# Test 1: Happy path
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_request_then_submit(flow, api):
    response = await flow.request_code(" alice@example.com ")
    assert response.ok
    assert flow.state == STATE_AWAITING_CODE
    assert flow.identity == "alice@example.com"
    assert "a***e@example.com" in response.message
    assert response.otp == "123456"

    response = await flow.submit("123456", "new-secret", "new-secret")
    assert response.ok
    assert flow.state == STATE_VERIFIED
    api.verify.assert_called_once_with("alice@example.com", "123456", "new-secret")


# ──────────────────────────────────────────────────────────
# Test 2: Request failures keep the user on the first step
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_request_failure_stays_on_identity(flow, api):
    api.request_code.return_value = APIResult(
        ok=False, message="No account found for this email or phone", reason="identity_not_found"
    )

    response = await flow.request_code("000-000-0000")

    assert not response.ok
    assert flow.state == STATE_ENTER_IDENTITY
    assert flow.last_error == "No account found for this email or phone"


@pytest.mark.asyncio
async def test_blank_identity_is_rejected_locally(flow, api):
    response = await flow.request_code("   ")
    assert not response.ok
    api.request_code.assert_not_called()


@pytest.mark.asyncio
async def test_phone_identity_is_masked(flow):
    response = await flow.request_code("123-456-7890")
    assert "***7890" in response.message


# ──────────────────────────────────────────────────────────
# Test 3: Local validation before calling the server
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, password, confirm, expected",
    [
        ("12345", "new-secret", None, "Code must be 6 digits."),
        ("12a456", "new-secret", None, "Code must be 6 digits."),
        ("123456", "short", None, "Password must be at least 6 characters."),
        ("123456", "new-secret", "other-secret", "Passwords do not match."),
    ],
)
async def test_submit_validates_locally(flow, api, code, password, confirm, expected):
    await flow.request_code("a@example.com")

    response = await flow.submit(code, password, confirm)

    assert not response.ok
    assert response.message == expected
    assert flow.state == STATE_AWAITING_CODE
    api.verify.assert_not_called()


@pytest.mark.asyncio
async def test_submit_before_request(flow, api):
    response = await flow.submit("123456", "new-secret")
    assert not response.ok
    api.verify.assert_not_called()


# ──────────────────────────────────────────────────────────
# Test 4: Server-side verification failures
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_wrong_code_stays_awaiting(flow, api):
    await flow.request_code("a@example.com")
    api.verify.return_value = APIResult(
        ok=False, message="Invalid reset code", reason="invalid_code"
    )

    response = await flow.submit("000000", "new-secret")

    assert not response.ok
    assert response.message == "Invalid reset code"
    assert flow.state == STATE_AWAITING_CODE


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["invalid_or_expired", "too_many_attempts"])
async def test_unrecoverable_failure_moves_to_failed(flow, api, reason):
    await flow.request_code("a@example.com")
    api.verify.return_value = APIResult(ok=False, message="Nope", reason=reason)

    response = await flow.submit("123456", "new-secret")

    assert not response.ok
    assert flow.state == STATE_FAILED
    assert "request a new code" in response.message

    # A new request restarts the flow
    response = await flow.request_code("a@example.com")
    assert response.ok
    assert flow.state == STATE_AWAITING_CODE


@pytest.mark.asyncio
async def test_network_error_is_surfaced(flow, api):
    await flow.request_code("a@example.com")
    api.verify.return_value = APIResult(
        ok=False, message="Failed to reset password. Please try again.", reason=NETWORK_ERROR
    )

    response = await flow.submit("123456", "new-secret")

    assert not response.ok
    assert flow.state == STATE_AWAITING_CODE


# ──────────────────────────────────────────────────────────
# Test 5: Resend countdown
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_resend_blocked_until_countdown_elapses(flow, api, clock):
    await flow.request_code("a@example.com")
    assert flow.seconds_until_resend == 60
    assert not flow.can_resend

    clock.advance(30)
    response = await flow.resend()
    assert not response.ok
    assert response.message == "Resend in 30s"
    assert api.request_code.call_count == 1

    clock.advance(30)
    assert flow.can_resend
    response = await flow.resend()
    assert response.ok
    assert api.request_code.call_count == 2
    assert flow.seconds_until_resend == 60


@pytest.mark.asyncio
async def test_countdown_rounds_partial_second_up(flow, api, clock):
    await flow.request_code("a@example.com")

    clock.advance(59.5)
    assert flow.seconds_until_resend == 1
    assert not flow.can_resend
    response = await flow.resend()
    assert not response.ok
    assert response.message == "Resend in 1s"
    assert api.request_code.call_count == 1

    clock.advance(0.5)
    assert flow.seconds_until_resend == 0
    assert flow.can_resend


@pytest.mark.asyncio
async def test_resend_without_request(flow, api):
    response = await flow.resend()
    assert not response.ok
    api.request_code.assert_not_called()


# ──────────────────────────────────────────────────────────
# Test 6: Cancellation
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_cancel_returns_to_start(flow):
    await flow.request_code("a@example.com")

    response = flow.cancel()

    assert flow.state == STATE_ENTER_IDENTITY
    assert flow.identity is None
    assert response.message == "Password reset cancelled."


# ──────────────────────────────────────────────────────────
# Test 7: API client network handling
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_api_client_network_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = ResetAPIClient("http://test/api", transport=httpx.MockTransport(refuse))

    result = await api.request_code("a@example.com")

    assert result.ok is False
    assert result.reason == NETWORK_ERROR
    assert result.message == "Failed to send reset code. Please try again."


@pytest.mark.asyncio
async def test_api_client_sends_phone_field():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={"message": "Reset code sent successfully"})

    api = ResetAPIClient("http://test/api/", transport=httpx.MockTransport(handler))

    result = await api.request_code("123-456-7890")

    assert result.ok
    assert result.otp is None
    assert seen["url"] == "http://test/api/reset-password/request"
    assert b'"phone"' in seen["body"]

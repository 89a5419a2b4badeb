"""Tests for the reset-code delivery channels."""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from reset_otp.security import mask_identity
from reset_otp.services.delivery import (
    EmailDelivery,
    LogDelivery,
    build_delivery_channel,
)


def test_email_message_contains_code_and_expiry():
    msg = EmailDelivery(ttl_minutes=10).build_message("a@example.com", "123456")

    assert msg["Subject"] == "Password Reset Code"
    assert msg["To"] == "a@example.com"
    text = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "123456" in text and "123456" in html
    assert "expire in 10 minutes" in text


@pytest.mark.asyncio
async def test_email_delivery_sends_via_smtp():
    with patch("reset_otp.services.delivery.aiosmtplib.send", new=AsyncMock()) as send:
        delivered = await EmailDelivery().send("a@example.com", "123456")

    assert delivered is True
    send.assert_awaited_once()
    assert send.await_args.args[0]["To"] == "a@example.com"


@pytest.mark.asyncio
async def test_email_delivery_skips_phone_identities():
    with patch("reset_otp.services.delivery.aiosmtplib.send", new=AsyncMock()) as send:
        delivered = await EmailDelivery().send("123-456-7890", "123456")

    assert delivered is False
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_log_delivery_logs_masked_target_in_development(caplog):
    with caplog.at_level(logging.INFO, logger="reset_otp.services.delivery"):
        assert await LogDelivery().send("john@example.com", "123456", development=True) is True

    assert "123456" in caplog.text
    assert "j***n@example.com" in caplog.text
    assert "john@example.com" not in caplog.text


@pytest.mark.asyncio
async def test_log_delivery_withholds_code_outside_development(caplog):
    with caplog.at_level(logging.DEBUG):
        assert await LogDelivery().send("john@example.com", "987654") is False

    assert "987654" not in caplog.text
    assert "john@example.com" not in caplog.text


@pytest.mark.asyncio
async def test_email_delivery_logs_masked_address(caplog):
    with caplog.at_level(logging.INFO, logger="reset_otp.services.delivery"):
        with patch("reset_otp.services.delivery.aiosmtplib.send", new=AsyncMock()):
            await EmailDelivery().send("john@example.com", "123456")

    assert "j***n@example.com" in caplog.text
    assert "john@example.com" not in caplog.text
    assert "123456" not in caplog.text


@pytest.mark.parametrize(
    "identity, masked",
    [
        ("john@example.com", "j***n@example.com"),
        ("a@example.com", "a***@example.com"),
        ("jo@example.com", "j***@example.com"),
        ("123-456-7890", "***7890"),
        ("1234", "***"),
        ("", "***"),
        (None, "***"),
    ],
)
def test_mask_identity(identity, masked):
    assert mask_identity(identity) == masked


def test_build_delivery_channel_follows_settings():
    with patch("reset_otp.services.delivery.settings") as fake_settings:
        fake_settings.delivery_backend = "smtp"
        fake_settings.otp_ttl_seconds = 600
        assert isinstance(build_delivery_channel(), EmailDelivery)

        fake_settings.delivery_backend = "log"
        assert isinstance(build_delivery_channel(), LogDelivery)

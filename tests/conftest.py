"""Shared fixtures: in-memory user store, OTP store, fake clock and delivery."""

from __future__ import annotations

import asyncio

import bcrypt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from reset_otp.models.user import Base, User
from reset_otp.otp.store import InMemoryOtpStore
from reset_otp.security import hash_password
from reset_otp.services.delivery import DeliveryChannel


class FakeClock:
    """Manually advanced clock, callable like ``time.time``."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDelivery(DeliveryChannel):
    """Delivery channel that remembers what it sent and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.result = True
        self.error: Exception | None = None
        self.delay = 0.0
        self.development_flags: list[bool] = []

    @property
    def name(self) -> str:
        return "recording"

    async def send(self, identity: str, code: str, *, development: bool = False) -> bool:
        self.development_flags.append(development)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((identity, code))
        return self.result


@pytest_asyncio.fixture
async def db_session():
    """Create tables in a fresh in-memory DB, seed users, and yield a session."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        session.add_all(
            [
                User(
                    name="Test User",
                    email="a@example.com",
                    phone="123-456-7890",
                    password_hash=hash_password("old-password"),
                ),
                User(
                    name="Jane Doe",
                    email="jane@example.com",
                    phone="987-654-3210",
                    password_hash=hash_password("password456"),
                ),
                User(
                    name="Gone User",
                    email="gone@example.com",
                    phone="555-555-5555",
                    password_hash=hash_password("whatever"),
                    is_active=False,
                ),
            ]
        )
        await session.commit()
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def password_matches():
    """Check a plaintext password against a stored bcrypt hash."""

    def check(plain: str, hashed: str) -> bool:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))

    return check


@pytest.fixture
def store():
    return InMemoryOtpStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def delivery():
    return RecordingDelivery()

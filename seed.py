"""Seed script — populates the database with sample users for testing."""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from reset_otp.database.engine import async_session_factory, init_db
from reset_otp.models.user import User
from reset_otp.security import hash_password

SAMPLE_USERS = [
    ("Test User", "a@example.com", "123-456-7890", "password123"),
    ("Jane Doe", "jane@example.com", "987-654-3210", "password456"),
]


async def seed() -> None:
    """Insert sample users into the database."""
    await init_db()
    async with async_session_factory() as session:
        session: AsyncSession
        for name, email, phone, password in SAMPLE_USERS:
            session.add(
                User(
                    name=name,
                    email=email,
                    phone=phone,
                    password_hash=hash_password(password),
                )
            )
        await session.commit()
    print(f"✅ Seeded {len(SAMPLE_USERS)} users into the database.")


if __name__ == "__main__":
    asyncio.run(seed())

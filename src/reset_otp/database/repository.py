"""User repository — data access layer for the user store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reset_otp.models.user import User
from reset_otp.security import hash_password

logger = logging.getLogger(__name__)


class UserRepository:
    """Encapsulates all database queries related to users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_email(self, email: str) -> User | None:
        """Look up an active user by e-mail address (case-insensitive)."""
        stmt = select(User).where(
            User.email == email.lower(), User.is_active.is_(True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_phone(self, phone: str) -> User | None:
        """Look up an active user by their phone number, as stored."""
        stmt = select(User).where(User.phone == phone, User.is_active.is_(True))
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def find_by_identity(self, identity: str) -> User | None:
        """Look up a user by e-mail when *identity* contains ``@``, else by phone."""
        if "@" in identity:
            return await self.find_by_email(identity)
        return await self.find_by_phone(identity)

    async def update_password(self, identity: str, new_password: str) -> bool:
        """Replace the password of the user matching *identity*.

        Returns ``False`` when no active user matches.
        """
        user = await self.find_by_identity(identity)
        if user is None:
            return False
        user.password_hash = hash_password(new_password)
        user.updated_at = datetime.now(UTC)
        await self._session.flush()
        logger.info("Password updated for user %s", user.id)
        return True

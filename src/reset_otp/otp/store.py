"""In-memory OTP store with expiry and per-identity locking."""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from reset_otp.security import mask_identity

logger = logging.getLogger(__name__)


@dataclass
class OtpRecord:
    """One in-flight reset: the code issued to *identity* and its failed tries."""

    identity: str
    code: str
    issued_at: float
    attempts: int = 0

    def age(self, now: float) -> float:
        return now - self.issued_at

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return self.age(now) > ttl_seconds


class BaseOtpStore(ABC):
    """Key-value capability holding at most one record per identity.

    Callers must wrap every read-modify-write of a record in
    :meth:`locked` so that concurrent requests for the same identity
    serialize, while different identities proceed independently.
    """

    @abstractmethod
    def get(self, identity: str) -> OtpRecord | None:
        """Return the live record for *identity*, if any."""

    @abstractmethod
    def set(self, record: OtpRecord) -> None:
        """Store *record*, replacing any previous record for its identity."""

    @abstractmethod
    def delete(self, identity: str) -> None:
        """Remove the record for *identity* (no-op when absent)."""

    @abstractmethod
    def locked(self, identity: str):
        """Async context manager holding the lock for *identity*."""

    @abstractmethod
    def purge_expired(self, ttl_seconds: float, now: float | None = None) -> int:
        """Delete records older than *ttl_seconds*; return how many went."""

    @abstractmethod
    def __len__(self) -> int: ...


class InMemoryOtpStore(BaseOtpStore):
    """Process-local OTP store.

    Records map ``identity → OtpRecord``.  Locks live in a weak-value
    map, so an identity's lock disappears once nobody holds it.
    Restarting the process drops every in-flight reset.
    """

    def __init__(self) -> None:
        self._records: dict[str, OtpRecord] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, identity: str) -> OtpRecord | None:
        return self._records.get(identity)

    def set(self, record: OtpRecord) -> None:
        if record.identity in self._records:
            logger.debug("Replacing outstanding code for %s", mask_identity(record.identity))
        self._records[record.identity] = record

    def delete(self, identity: str) -> None:
        self._records.pop(identity, None)

    @asynccontextmanager
    async def locked(self, identity: str) -> AsyncIterator[None]:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        async with lock:
            yield

    def purge_expired(self, ttl_seconds: float, now: float | None = None) -> int:
        now = time.time() if now is None else now
        stale = [
            identity
            for identity, record in self._records.items()
            if record.is_expired(ttl_seconds, now)
        ]
        for identity in stale:
            self._records.pop(identity, None)
        if stale:
            logger.info("Purged %d expired reset code(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._records)

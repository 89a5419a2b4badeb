"""Background sweep that reclaims expired reset codes."""

from __future__ import annotations

import asyncio
import logging

from reset_otp.otp.store import BaseOtpStore

logger = logging.getLogger(__name__)


class OtpReaper:
    """Periodically purges records older than the expiry window.

    Verification still checks expiry itself; the sweep only keeps codes
    for identities that never come back from piling up in memory.
    """

    def __init__(
        self, store: BaseOtpStore, ttl_seconds: float, interval_seconds: float
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> int:
        """Run one purge pass immediately."""
        return self._store.purge_expired(self._ttl)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.sweep()

    def start(self) -> None:
        if self._interval <= 0:
            logger.info("OTP reaper disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="otp-reaper")
        logger.info("OTP reaper started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("OTP reaper stopped")

"""
Process-wide limit on concurrent analyses
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from config import SiteAuditConfig, config as default_config

logger = logging.getLogger(__name__)


class ThrottleLease:
    """One acquired slot; releasing twice is a no-op"""

    def __init__(self, on_release: Callable[[], None]):
        self._on_release = on_release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self):
        if self._released:
            return
        self._released = True
        self._on_release()


class AnalysisThrottler:
    """Caps how many analyses run at once across API calls and the worker"""

    def __init__(self, max_concurrent: Optional[int] = None, settings: Optional[SiteAuditConfig] = None):
        settings = settings or default_config
        if max_concurrent is None:
            max_concurrent = settings.max_concurrent_scans
        self.max_concurrent = max(1, max_concurrent)
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._in_use = 0

    @property
    def available(self) -> int:
        """Slots not currently leased"""
        return self.max_concurrent - self._in_use

    async def acquire_lease(self) -> ThrottleLease:
        await self._semaphore.acquire()
        self._in_use += 1
        return ThrottleLease(self._release_slot)

    def _release_slot(self):
        self._in_use -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def acquire(self):
        """Hold a slot for the duration of the block"""
        lease = await self.acquire_lease()
        logger.debug(f"Analysis slot acquired ({self.available}/{self.max_concurrent} free)")
        try:
            yield lease
        finally:
            lease.release()

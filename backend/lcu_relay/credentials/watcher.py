"""
Credential watcher
Polls the lockfile at a fixed interval and classifies what changed
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, Optional, Tuple

from loguru import logger

from ..models import Credentials
from .locator import CredentialLocator


class CredentialChange(str, Enum):
    """Outcome of one poll compared to the previous one"""
    UNCHANGED = "unchanged"
    APPEARED = "appeared"
    DISAPPEARED = "disappeared"
    ROTATED = "rotated"


class CredentialWatcher:
    """Tracks the latest credentials seen in the lockfile"""

    def __init__(self, locator: CredentialLocator, interval: float = 5.0):
        self.locator = locator
        self.interval = interval
        self._current: Optional[Credentials] = None

    @property
    def current(self) -> Optional[Credentials]:
        return self._current

    async def poll(self) -> CredentialChange:
        """Read the lockfile once and record the result"""
        previous = self._current
        current = await self.locator.locate()
        self._current = current

        if previous is None and current is None:
            return CredentialChange.UNCHANGED
        if previous is None:
            logger.info(f"LCU credentials appeared (port: {current.port})")
            return CredentialChange.APPEARED
        if current is None:
            logger.info("LCU credentials disappeared (client closed)")
            return CredentialChange.DISAPPEARED
        if previous != current:
            logger.info(f"LCU credentials rotated (port: {previous.port} -> {current.port})")
            return CredentialChange.ROTATED
        return CredentialChange.UNCHANGED

    async def watch(self) -> AsyncIterator[Tuple[CredentialChange, Optional[Credentials]]]:
        """Poll forever, yielding after every read"""
        while True:
            change = await self.poll()
            yield change, self._current
            await asyncio.sleep(self.interval)

"""
Receive — collect the daemon's message stream for one number into a batch.

signald keeps pushing frames after a subscribe; a frame with ``done`` set
marks the end of what is currently pending. Without a timeout the call waits
for that frame indefinitely.
"""

import asyncio
import logging
from typing import Optional

from signald_rest.models.frame import DaemonFrame
from signald_rest.signald import Signald

logger = logging.getLogger(__name__)


class ReceiveStreamAdapter:
    def __init__(self, signald: Signald):
        self._signald = signald

    async def receive(self, number: str, timeout: Optional[float] = None) -> list[DaemonFrame]:
        """Return every frame up to and including the batch-complete one."""
        try:
            return await asyncio.wait_for(self._collect(number), timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"No complete batch for {number} within {timeout}s")

    async def _collect(self, number: str) -> list[DaemonFrame]:
        batch: list[DaemonFrame] = []
        subscription = await self._signald.subscribe(number)
        with subscription:
            async for frame in subscription:
                batch.append(frame)
                if frame.done:
                    break
        logger.debug("Received %d frame(s) for %s", len(batch), number)
        return batch

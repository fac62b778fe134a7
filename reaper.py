import asyncio
from typing import List, Optional

from constants import REAPER_INTERVAL_SECONDS
from logging_config import get_logger

logger = get_logger(__name__)


class Reaper:
    """Background sweep that archives expired rooms on a fixed interval.

    Every tick ends with one rooms_updated broadcast, whether or not anything
    expired; clients treat it as "refresh your room list".
    """

    def __init__(self, registry, gateway, interval: float = REAPER_INTERVAL_SECONDS):
        self.registry = registry
        self.gateway = gateway
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def sweep(self) -> List[str]:
        archived = self.registry.sweep_expired()
        if archived:
            logger.info(f"Reaper archived {len(archived)} expired rooms: {archived}")
        self.gateway.notify_rooms_updated()
        return archived

    async def run(self):
        logger.info(f"Starting reaper with {self.interval}s interval")
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Error in reaper tick: {e}", exc_info=True)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Reaper task cancelled")
        self._task = None

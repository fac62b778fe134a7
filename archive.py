from typing import Dict, List, Optional

from models import ArchivedRoom
from logging_config import get_logger

logger = get_logger(__name__)


class ArchiveStore:
    """Read-only summaries of rooms that have left the live registry.

    Entries are written by ``RoomRegistry.archive`` only and kept for the
    lifetime of the process.
    """

    def __init__(self):
        self._rooms: Dict[str, ArchivedRoom] = {}

    def put(self, archived: ArchivedRoom):
        if archived.id in self._rooms:
            logger.debug(f"Replacing archived snapshot for room {archived.id}")
        self._rooms[archived.id] = archived

    def get(self, room_id: str) -> Optional[ArchivedRoom]:
        return self._rooms.get(room_id)

    def remove(self, room_id: str) -> bool:
        return self._rooms.pop(room_id, None) is not None

    def all(self) -> List[ArchivedRoom]:
        return list(self._rooms.values())

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

from typing import List, Optional

from models import Message, Room
from logging_config import get_logger

logger = get_logger(__name__)


class MessageLog:
    """Append-only message history per room, bounded by the room's lifetime."""

    def __init__(self, registry):
        self.registry = registry

    def append(self, room: Room, author: Optional[str], text: Optional[str]) -> Optional[Message]:
        if not text or not text.strip():
            logger.debug(f"Dropping empty message for room {room.id}")
            return None
        if self.registry.is_expired(room):
            logger.debug(f"Dropping message for expired room {room.id}")
            return None
        message = Message(
            author=author or "Guest",
            text=text,
            timestamp=self.registry.now(),
            seq=len(room.messages) + 1,
        )
        room.messages.append(message)
        logger.debug(f"Appended message #{len(room.messages)} to room {room.id}")
        return message

    def history_of(self, room: Room) -> List[Message]:
        return list(room.messages)

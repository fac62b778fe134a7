import random
import re
import string
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from archive import ArchiveStore
from clock import SystemClock
from constants import LOBBY_ALIASES, LOBBY_ID, LOBBY_NAME, PROTECTED_ROOM_IDS, ROOM_TTL_MINUTES
from errors import ProtectedRoom, RoomExpired, RoomNotFound
from message_log import MessageLog
from models import ArchivedRoom, Room
from tracker import ParticipantTracker
from logging_config import get_logger

logger = get_logger(__name__)

# trailing "-xxxxx" added by generate_room_id
ROOM_SUFFIX_RE = re.compile(r"-[a-z0-9]{5}$")


def slugify(name: str, default: str = "fan-room") -> str:
    slug = re.sub(r"\s+", "-", (name or "").strip()).lower()
    return slug or default


def generate_room_id(name: str, length: int = 5) -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
    return f"{slugify(name)}-{suffix}"


class RoomRegistry:
    """Authoritative map of live rooms plus the archive and the join ledger.

    All mutations run to completion on the event loop thread, so the maps are
    not locked. Moving to a threaded runtime would need a lock around them.
    """

    def __init__(self, clock=None, ttl: Optional[timedelta] = None):
        self.clock = clock or SystemClock()
        self.ttl = ttl or timedelta(minutes=ROOM_TTL_MINUTES)
        self.rooms: Dict[str, Room] = {}
        self.archive = ArchiveStore()
        self.tracker = ParticipantTracker(self)
        self.messages = MessageLog(self)
        # called with a room id whenever a live room stops being live
        self.close_listeners: List[Callable[[str], None]] = []
        logger.info(f"Initializing RoomRegistry with room TTL {self.ttl}")

    def add_close_listener(self, listener: Callable[[str], None]):
        self.close_listeners.append(listener)

    def _closed(self, room_id: str):
        for listener in self.close_listeners:
            listener(room_id)

    def now(self) -> datetime:
        return self.clock.now()

    def is_expired(self, room: Room) -> bool:
        return self.now() >= room.expires_at

    def create_room(self, name: str, expires_at: Optional[datetime] = None, room_id: Optional[str] = None) -> Room:
        created_at = self.now()
        room = Room(
            id=room_id or generate_room_id(name),
            name=name,
            created_at=created_at,
            expires_at=expires_at or created_at + self.ttl,
        )
        self.rooms[room.id] = room
        logger.info(f"Room {room.id} created: name={room.name}, expires_at={room.expires_at.isoformat()}")
        return room

    def get_or_create_fixed(self, fixed_id: str, display_name: str) -> Room:
        room = self.rooms.get(fixed_id)
        if room is not None:
            if not self.is_expired(room):
                return room
            self.archive_room(fixed_id)
        return self.create_room(display_name, room_id=fixed_id)

    def resolve_or_create_by_requested_id(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is not None:
            return room
        name = ROOM_SUFFIX_RE.sub("", room_id)
        return self.create_room(name, room_id=room_id)

    def find_live_by_name(self, name: str) -> Optional[Room]:
        wanted = (name or "").strip().lower()
        for room in self.rooms.values():
            if not self.is_expired(room) and room.name.lower() == wanted:
                return room
        return None

    def create_or_reuse(self, name: Optional[str]) -> Tuple[Room, bool]:
        """Create a room by display name, returning (room, created).

        Lobby aliases always resolve to the lobby singleton, and a live room
        with the same name (case-insensitive) is reused.
        """
        raw = (name or "fan room").strip() or "fan room"
        if raw.lower() in LOBBY_ALIASES:
            return self.get_or_create_fixed(LOBBY_ID, LOBBY_NAME), True

        existing = self.find_live_by_name(raw)
        if existing is not None:
            logger.debug(f"Reusing live room {existing.id} for name {raw}")
            return existing, False
        return self.create_room(raw), True

    def open_for_join(self, room_id: str) -> Room:
        if room_id.strip().lower() in LOBBY_ALIASES:
            return self.get_or_create_fixed(LOBBY_ID, LOBBY_NAME)

        if room_id not in self.rooms and room_id in self.archive:
            raise RoomExpired(room_id)

        room = self.resolve_or_create_by_requested_id(room_id)
        if self.is_expired(room):
            self.archive_room(room.id)
            raise RoomExpired(room.id)
        return room

    def open_for_message(self, room_id: str) -> Optional[Room]:
        room = self.rooms.get(room_id)
        if room is None:
            return None
        if self.is_expired(room):
            self.archive_room(room.id)
            raise RoomExpired(room.id)
        return room

    def archive_room(self, room_id: str) -> Optional[ArchivedRoom]:
        """Move a live room into the archive. No-op if it is not live."""
        room = self.rooms.pop(room_id, None)
        if room is None:
            return None
        expired_at = self.now()
        archived = ArchivedRoom(
            id=room.id,
            name=room.name,
            created_at=room.created_at,
            expired_at=expired_at,
            participants_ever_joined=tuple(room.ever_joined.values()),
        )
        self.archive.put(archived)
        stamped = self.tracker.stamp_expired(room.id, expired_at)
        logger.info(f"Room {room.id} archived with {len(archived.participants_ever_joined)} participants, {stamped} ledger records stamped")
        self._closed(room.id)
        return archived

    def sweep_expired(self) -> List[str]:
        expired = [room_id for room_id, room in self.rooms.items() if self.is_expired(room)]
        for room_id in expired:
            self.archive_room(room_id)
        return expired

    def list_live(self) -> List[Room]:
        live = [room for room in self.rooms.values() if not self.is_expired(room)]
        live.sort(key=lambda r: r.created_at, reverse=True)
        return live

    def detail(self, room_id: str) -> Tuple[Union[Room, ArchivedRoom], bool]:
        """Look a room up for display, returning (room, archived_now).

        An expired live room is archived on the spot; archived_now tells the
        caller the room list changed.
        """
        room = self.rooms.get(room_id)
        if room is not None:
            if not self.is_expired(room):
                return room, False
            return self.archive_room(room_id), True
        archived = self.archive.get(room_id)
        if archived is None:
            raise RoomNotFound(room_id)
        return archived, False

    def delete(self, room_id: str) -> bool:
        if room_id in PROTECTED_ROOM_IDS:
            raise ProtectedRoom(room_id)
        removed_live = self.rooms.pop(room_id, None) is not None
        removed_archived = self.archive.remove(room_id)
        if not (removed_live or removed_archived):
            return False
        self.tracker.purge(room_id)
        if removed_live:
            self._closed(room_id)
        logger.info(f"Room {room_id} deleted: live={removed_live}, archived={removed_archived}")
        return True

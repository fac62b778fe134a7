"""
In-memory room state: live rooms, archived summaries and per-user join records.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


@dataclass
class Participant:
    id: str
    name: str = "Guest"


@dataclass(frozen=True)
class Message:
    author: str
    text: str
    timestamp: datetime
    # 1-based position in the room, used to skip live copies of replayed history
    seq: int = 0


@dataclass
class Room:
    id: str
    name: str
    created_at: datetime
    expires_at: datetime
    messages: List[Message] = field(default_factory=list)
    # current occupancy
    participants: Dict[str, Participant] = field(default_factory=dict)
    # anyone who ever joined, never shrinks
    ever_joined: Dict[str, Participant] = field(default_factory=dict)

    def __post_init__(self):
        if self.expires_at <= self.created_at:
            raise ValueError(f"Room {self.id} must expire after it is created")


@dataclass(frozen=True)
class ArchivedRoom:
    id: str
    name: str
    created_at: datetime
    expired_at: datetime
    participants_ever_joined: Tuple[Participant, ...] = ()


@dataclass
class JoinRecord:
    room_id: str
    room_name: str
    joined_at: datetime
    expired_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.expired_at is None


@dataclass
class LedgerEntry:
    """A join record enriched with the room's participants and expiry."""

    room_id: str
    room_name: str
    joined_at: datetime
    expired_at: Optional[datetime]
    participants: List[Participant]

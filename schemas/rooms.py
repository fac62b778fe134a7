from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models import ArchivedRoom, LedgerEntry, Message, Participant, Room


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRoomRequest(CamelModel):
    name: Optional[str] = None


class ParticipantOut(CamelModel):
    id: str
    name: str

    @classmethod
    def from_participant(cls, participant: Participant) -> "ParticipantOut":
        return cls(id=participant.id, name=participant.name)


class MessageOut(CamelModel):
    user: str
    text: str
    ts: datetime
    seq: int

    @classmethod
    def from_message(cls, message: Message) -> "MessageOut":
        return cls(user=message.author, text=message.text, ts=message.timestamp, seq=message.seq)


class RoomCreatedResponse(CamelModel):
    id: str
    name: str
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_room(cls, room: Room) -> "RoomCreatedResponse":
        return cls(id=room.id, name=room.name, created_at=room.created_at, expires_at=room.expires_at)


class RoomSummary(RoomCreatedResponse):
    participant_count: int

    @classmethod
    def from_room(cls, room: Room) -> "RoomSummary":
        return cls(
            id=room.id,
            name=room.name,
            created_at=room.created_at,
            expires_at=room.expires_at,
            participant_count=len(room.participants),
        )


class LiveRoomDetail(RoomCreatedResponse):
    participants: list[ParticipantOut]

    @classmethod
    def from_room(cls, room: Room) -> "LiveRoomDetail":
        return cls(
            id=room.id,
            name=room.name,
            created_at=room.created_at,
            expires_at=room.expires_at,
            participants=[ParticipantOut.from_participant(p) for p in room.participants.values()],
        )


class ArchivedRoomDetail(CamelModel):
    id: str
    name: str
    created_at: datetime
    expired_at: datetime
    participants_history: list[ParticipantOut]

    @classmethod
    def from_archived(cls, archived: ArchivedRoom) -> "ArchivedRoomDetail":
        return cls(
            id=archived.id,
            name=archived.name,
            created_at=archived.created_at,
            expired_at=archived.expired_at,
            participants_history=[ParticipantOut.from_participant(p) for p in archived.participants_ever_joined],
        )


class JoinedRoom(CamelModel):
    room_id: str
    name: str
    joined_at: datetime
    expired_at: Optional[datetime] = None
    participants: list[ParticipantOut]

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "JoinedRoom":
        return cls(
            room_id=entry.room_id,
            name=entry.room_name,
            joined_at=entry.joined_at,
            expired_at=entry.expired_at,
            participants=[ParticipantOut.from_participant(p) for p in entry.participants],
        )

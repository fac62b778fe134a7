from datetime import datetime
from typing import Dict, List

from models import JoinRecord, LedgerEntry, Participant, Room
from logging_config import get_logger

logger = get_logger(__name__)


class ParticipantTracker:
    """Current occupancy, ever-joined history and the per-user join ledger.

    The ledger (participant id -> list of JoinRecord) lives here rather than on
    any room, because it outlives rooms: archival stamps its records and
    deletion purges them.
    """

    def __init__(self, registry):
        self.registry = registry
        self.ledgers: Dict[str, List[JoinRecord]] = {}

    def join(self, room: Room, participant_id: str, display_name: str = None) -> Participant:
        participant = Participant(id=str(participant_id), name=display_name or "Guest")
        room.participants[participant.id] = participant
        room.ever_joined[participant.id] = participant

        joined_at = self.registry.now()
        records = self.ledgers.setdefault(participant.id, [])
        for record in records:
            if record.room_id == room.id and record.is_open:
                record.joined_at = joined_at
                record.room_name = room.name
                logger.debug(f"Refreshed ledger record for {participant.id} in room {room.id}")
                break
        else:
            records.append(JoinRecord(room_id=room.id, room_name=room.name, joined_at=joined_at))
            logger.debug(f"Added ledger record for {participant.id} in room {room.id}")

        logger.info(f"Participant {participant.id} ({participant.name}) joined room {room.id}")
        return participant

    def leave(self, room: Room, participant_id: str) -> bool:
        removed = room.participants.pop(str(participant_id), None) is not None
        if removed:
            logger.info(f"Participant {participant_id} left room {room.id}")
        return removed

    def stamp_expired(self, room_id: str, expired_at: datetime) -> int:
        stamped = 0
        for records in self.ledgers.values():
            for record in records:
                if record.room_id == room_id and record.is_open:
                    record.expired_at = expired_at
                    stamped += 1
        return stamped

    def purge(self, room_id: str) -> int:
        purged = 0
        for participant_id in list(self.ledgers):
            records = self.ledgers[participant_id]
            kept = [r for r in records if r.room_id != room_id]
            purged += len(records) - len(kept)
            self.ledgers[participant_id] = kept
        logger.debug(f"Purged {purged} ledger records for room {room_id}")
        return purged

    def ledger_for(self, participant_id: str) -> List[LedgerEntry]:
        """Rooms a participant joined, one entry per room, newest join first.

        Participants come from the live room if it is still live, otherwise
        from the archived snapshot. A live room that has expired but has not
        been reaped yet reports "now" as its expiry.
        """
        latest: Dict[str, LedgerEntry] = {}
        for record in self.ledgers.get(str(participant_id), []):
            live = self.registry.rooms.get(record.room_id)
            past = self.registry.archive.get(record.room_id)

            if live is not None:
                participants = list(live.ever_joined.values())
                expired_at = self.registry.now() if self.registry.is_expired(live) else record.expired_at
            elif past is not None:
                participants = list(past.participants_ever_joined)
                expired_at = past.expired_at
            else:
                participants = []
                expired_at = record.expired_at

            entry = LedgerEntry(
                room_id=record.room_id,
                room_name=record.room_name,
                joined_at=record.joined_at,
                expired_at=expired_at,
                participants=participants,
            )
            current = latest.get(record.room_id)
            if current is None or entry.joined_at > current.joined_at:
                latest[record.room_id] = entry

        return sorted(latest.values(), key=lambda e: e.joined_at, reverse=True)

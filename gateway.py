"""
Realtime fan-out: maps sessions to rooms and turns registry changes into events.

Outbound events are queued on each session synchronously, inside the handler
that produced them, so a session sees events in the order they were produced.
That is what puts ``history`` ahead of any ``chat_message`` appended after the
join.
"""
import asyncio
import uuid
from typing import Any, Dict, Optional, Set

from pydantic import ValidationError

from errors import RoomExpired
from registry import RoomRegistry
from schemas.events import ChatMessageEvent, JoinRoomEvent
from schemas.rooms import MessageOut, ParticipantOut
from logging_config import get_logger

logger = get_logger(__name__)

HISTORY = "history"
PARTICIPANTS = "participants"
CHAT_MESSAGE = "chat_message"
ROOM_EXPIRED = "room_expired"
ROOMS_UPDATED = "rooms_updated"
JOIN_ROOM = "join_room"


class Session:
    """One transport connection: its last joined room and identity."""

    def __init__(self, session_id: Optional[str] = None):
        self.id = session_id or uuid.uuid4().hex
        self.room_id: Optional[str] = None
        self.user_id: Optional[str] = None
        # seq of the last message sent in this session's history
        self.history_seq = 0
        self.outbox: asyncio.Queue = asyncio.Queue()

    def send(self, event: str, payload: Any = None):
        self.outbox.put_nowait({"event": event, "payload": payload})


class BroadcastGateway:
    def __init__(self, registry: RoomRegistry, broker, user_directory=None):
        self.registry = registry
        self.broker = broker
        self.user_directory = user_directory
        self.sessions: Dict[str, Session] = {}
        # room id -> ids of sessions subscribed to it
        self.subscribers: Dict[str, Set[str]] = {}
        broker.bind(self.deliver)
        registry.add_close_listener(self.drop_room)

    # -- channel capability -------------------------------------------------

    def connect(self, session: Session):
        self.sessions[session.id] = session
        logger.debug(f"Session {session.id} connected ({len(self.sessions)} sessions)")

    def subscribe(self, session: Session, room_id: str):
        self.subscribers.setdefault(room_id, set()).add(session.id)
        session.room_id = room_id
        logger.debug(f"Session {session.id} subscribed to room {room_id}")

    def unsubscribe(self, session: Session, room_id: str):
        members = self.subscribers.get(room_id)
        if members is None:
            return
        members.discard(session.id)
        if not members:
            del self.subscribers[room_id]

    def drop_room(self, room_id: str):
        """Forget every subscription to a room that is no longer live.

        A later room reusing the id starts with no subscribers.
        """
        members = self.subscribers.pop(room_id, set())
        for sid in members:
            session = self.sessions.get(sid)
            if session is not None and session.room_id == room_id:
                session.room_id = None
                session.user_id = None
                session.history_seq = 0
        if members:
            logger.debug(f"Dropped {len(members)} subscriptions to closed room {room_id}")

    def publish(self, room_id: str, event: str, payload: Any = None):
        self.broker.publish(room_id, {"event": event, "payload": payload})

    def broadcast(self, event: str, payload: Any = None):
        self.broker.publish(None, {"event": event, "payload": payload})

    def deliver(self, room_id: Optional[str], envelope: dict):
        """Broker callback: hand an envelope to the local sessions it targets."""
        if room_id is None:
            targets = list(self.sessions.values())
        else:
            targets = [self.sessions[sid] for sid in self.subscribers.get(room_id, ()) if sid in self.sessions]
        if envelope.get("event") == CHAT_MESSAGE and isinstance(envelope.get("payload"), dict):
            # already replayed to sessions whose history covers it
            seq = envelope["payload"].get("seq", 0)
            targets = [s for s in targets if seq > s.history_seq]
        for session in targets:
            session.outbox.put_nowait(envelope)
        logger.debug(f"Delivered {envelope.get('event')} to {len(targets)} sessions (room={room_id})")

    def notify_rooms_updated(self):
        self.broadcast(ROOMS_UPDATED)

    def publish_participants(self, room):
        participants = [ParticipantOut.from_participant(p).model_dump(mode="json") for p in room.participants.values()]
        self.publish(room.id, PARTICIPANTS, participants)

    # -- inbound events ------------------------------------------------------

    async def receive(self, session: Session, envelope: Any):
        """Entry point for a raw client envelope.

        The only suspension point is the optional display-name lookup, which
        happens before any shared state is touched.
        """
        if not isinstance(envelope, dict):
            logger.debug(f"Dropping non-object envelope from session {session.id}")
            return
        payload = envelope.get("payload")
        if (
            envelope.get("event") == JOIN_ROOM
            and self.user_directory is not None
            and isinstance(payload, dict)
            and payload.get("userId")
            and not payload.get("user")
        ):
            name = await self.user_directory.display_name(str(payload["userId"]))
            if name:
                payload = {**payload, "user": name}
        self.handle(session, envelope.get("event"), payload)

    def handle(self, session: Session, event: Optional[str], payload: Any):
        if event == JOIN_ROOM:
            self.join_room(session, payload)
        elif event == CHAT_MESSAGE:
            self.chat_message(session, payload)
        else:
            logger.debug(f"Dropping unknown event {event!r} from session {session.id}")

    def join_room(self, session: Session, payload: Any):
        try:
            request = JoinRoomEvent.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Dropping invalid join_room from session {session.id}: {e.error_count()} errors")
            return

        try:
            room = self.registry.open_for_join(request.room_id)
        except RoomExpired:
            logger.info(f"Session {session.id} tried to join expired room {request.room_id}")
            session.send(ROOM_EXPIRED)
            self.notify_rooms_updated()
            return

        participant_id = request.user_id or f"guest-{session.id}"
        if session.room_id is not None and (session.room_id != room.id or session.user_id != participant_id):
            self._leave_current(session)

        participant = self.registry.tracker.join(room, participant_id, request.user)
        self.subscribe(session, room.id)
        session.user_id = participant.id

        messages = self.registry.messages.history_of(room)
        session.history_seq = messages[-1].seq if messages else 0
        session.send(HISTORY, [MessageOut.from_message(m).model_dump(mode="json") for m in messages])
        self.publish_participants(room)
        self.notify_rooms_updated()

    def chat_message(self, session: Session, payload: Any):
        try:
            request = ChatMessageEvent.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Dropping invalid chat_message from session {session.id}: {e.error_count()} errors")
            return

        try:
            room = self.registry.open_for_message(request.room_id)
        except RoomExpired:
            logger.info(f"Dropping message for expired room {request.room_id} from session {session.id}")
            self.notify_rooms_updated()
            return
        if room is None:
            logger.debug(f"Dropping message for unknown room {request.room_id}")
            return

        message = self.registry.messages.append(room, request.user, request.text)
        if message is None:
            return
        self.publish(room.id, CHAT_MESSAGE, MessageOut.from_message(message).model_dump(mode="json"))

    # -- disconnect ----------------------------------------------------------

    def on_disconnect(self, session: Session):
        self.sessions.pop(session.id, None)
        if session.room_id is not None and session.user_id is not None:
            self._leave_current(session)
        logger.debug(f"Session {session.id} disconnected ({len(self.sessions)} sessions)")

    def _leave_current(self, session: Session):
        room_id, user_id = session.room_id, session.user_id
        self.unsubscribe(session, room_id)
        session.room_id = None

        room = self.registry.rooms.get(room_id)
        if room is None:
            return
        # another tab of the same participant keeps them present
        still_present = any(
            self.sessions[sid].user_id == user_id
            for sid in self.subscribers.get(room_id, ())
            if sid in self.sessions
        )
        if not still_present:
            self.registry.tracker.leave(room, user_id)
        self.publish_participants(room)
        self.notify_rooms_updated()

from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Response

from dependencies import get_gateway, get_registry
from errors import InvalidInput, ProtectedRoom, RoomNotFound
from games import Game, open_game_room
from gateway import BroadcastGateway
from models import ArchivedRoom
from registry import RoomRegistry
from schemas.games import GameRoomRequest
from schemas.rooms import ArchivedRoomDetail, CreateRoomRequest, LiveRoomDetail, RoomCreatedResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@rooms_router.get("", response_model=list[RoomSummary])
async def list_rooms(registry: RoomRegistry = Depends(get_registry)):
    return [RoomSummary.from_room(room) for room in registry.list_live()]


@rooms_router.post("", response_model=RoomCreatedResponse, status_code=201)
async def create_room(
    body: CreateRoomRequest,
    response: Response,
    registry: RoomRegistry = Depends(get_registry),
    gateway: BroadcastGateway = Depends(get_gateway),
):
    logger.info(f"Room creation request, name: {body.name}")
    room, created = registry.create_or_reuse(body.name)
    if created:
        gateway.notify_rooms_updated()
    else:
        response.status_code = 200
    return RoomCreatedResponse.from_room(room)


@rooms_router.post("/from-game", response_model=RoomCreatedResponse, status_code=201)
async def create_room_from_game(
    body: GameRoomRequest,
    response: Response,
    registry: RoomRegistry = Depends(get_registry),
    gateway: BroadcastGateway = Depends(get_gateway),
):
    logger.info(f"Game room request: {body.home} vs {body.away} ({body.sport}) at {body.start_time_iso.isoformat()}")
    start = body.start_time_iso
    if start.tzinfo is None:
        raise HTTPException(status_code=400, detail="startTimeIso must include a timezone")
    game = Game(
        id=body.id or "",
        sport=body.sport,
        league=body.league,
        home=body.home,
        away=body.away,
        start_time=start,
    )
    try:
        room, created = open_game_room(registry, game)
    except InvalidInput as e:
        logger.warning(f"Game room creation failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    if created:
        gateway.notify_rooms_updated()
    else:
        response.status_code = 200
    return RoomCreatedResponse.from_room(room)


@rooms_router.get("/{room_id}", response_model=Union[LiveRoomDetail, ArchivedRoomDetail])
async def get_room_details(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
    gateway: BroadcastGateway = Depends(get_gateway),
):
    """Live room with current participants, or the archived summary."""
    try:
        room, archived_now = registry.detail(room_id)
    except RoomNotFound:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    if archived_now:
        gateway.notify_rooms_updated()
    if isinstance(room, ArchivedRoom):
        return ArchivedRoomDetail.from_archived(room)
    return LiveRoomDetail.from_room(room)


@rooms_router.delete("/{room_id}")
async def delete_room(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
    gateway: BroadcastGateway = Depends(get_gateway),
):
    logger.info(f"Delete room request for {room_id}")
    try:
        deleted = registry.delete(room_id)
    except ProtectedRoom:
        logger.warning(f"Delete room failed: {room_id} is the lobby")
        raise HTTPException(status_code=409, detail="The global lobby cannot be deleted")
    if not deleted:
        logger.warning(f"Delete room failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    gateway.notify_rooms_updated()
    return {"message": "Room deleted", "id": room_id}

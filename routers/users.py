from fastapi import APIRouter, Depends, HTTPException

from dependencies import get_registry, get_user_directory
from errors import UpstreamError
from registry import RoomRegistry
from schemas.rooms import JoinedRoom
from logging_config import get_logger

logger = get_logger(__name__)

users_router = APIRouter(prefix="/api/users", tags=["users"])


@users_router.get("/{user_id}/rooms", response_model=list[JoinedRoom])
async def get_user_rooms(
    user_id: str,
    registry: RoomRegistry = Depends(get_registry),
    user_directory=Depends(get_user_directory),
):
    """Rooms the user joined, one per room, newest join first."""
    if user_directory is not None:
        try:
            user = await user_directory.get_user(user_id)
        except UpstreamError as e:
            logger.error(f"User lookup failed for {user_id}: {e}")
            raise HTTPException(status_code=502, detail="User service unavailable")
        if user is None:
            logger.warning(f"Room history failed: User {user_id} not found")
            raise HTTPException(status_code=404, detail="User not found")
    return [JoinedRoom.from_entry(entry) for entry in registry.tracker.ledger_for(user_id)]

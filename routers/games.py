from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies import get_game_feed
from errors import UpstreamError
from schemas.games import GameOut
from logging_config import get_logger

logger = get_logger(__name__)

games_router = APIRouter(prefix="/api/games", tags=["games"])


@games_router.get("/live", response_model=list[GameOut])
async def live_games(
    team: Optional[str] = Query(None, description="Only games where this team plays"),
    hours: int = Query(24, ge=1, le=24 * 7, description="Look-ahead window in hours"),
    game_feed=Depends(get_game_feed),
):
    try:
        games = await game_feed.upcoming(team=team, hours=hours)
    except UpstreamError as e:
        logger.error(f"Games feed failed: {e}")
        raise HTTPException(status_code=502, detail="Games feed unavailable")
    return [GameOut.from_game(game) for game in games]

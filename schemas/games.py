from datetime import datetime
from typing import Optional

from pydantic import Field

from games import Game
from schemas.rooms import CamelModel


class GameOut(CamelModel):
    id: str
    sport: str
    league: Optional[str] = None
    home: str
    away: str
    start_time_iso: datetime
    status: str

    @classmethod
    def from_game(cls, game: Game) -> "GameOut":
        return cls(
            id=game.id,
            sport=game.sport,
            league=game.league,
            home=game.home,
            away=game.away,
            start_time_iso=game.start_time,
            status=game.status,
        )


class GameRoomRequest(CamelModel):
    id: Optional[str] = None
    sport: str = Field(min_length=1)
    league: Optional[str] = None
    home: str = Field(min_length=1)
    away: str = Field(min_length=1)
    start_time_iso: datetime

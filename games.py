"""
Game-derived rooms and the upcoming-games feed (TheSportsDB).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import httpx

from constants import GAME_FEED_SPORTS, GAME_ROOM_GRACE_HOURS, HTTP_TIMEOUT_SECONDS, SPORTSDB_URL
from errors import InvalidInput, UpstreamError
from models import Room
from registry import RoomRegistry, slugify
from logging_config import get_logger

logger = get_logger(__name__)

SPORT_DURATIONS = {
    "soccer": timedelta(hours=2),
    "basketball": timedelta(hours=2, minutes=30),
    "hockey": timedelta(hours=2, minutes=30),
    "baseball": timedelta(hours=3),
    "football": timedelta(hours=3, minutes=30),
    "american football": timedelta(hours=3, minutes=30),
}
DEFAULT_GAME_DURATION = timedelta(hours=3)


@dataclass
class Game:
    id: str
    sport: str
    home: str
    away: str
    start_time: datetime
    league: Optional[str] = None
    status: str = "UPCOMING"


def estimated_duration(sport: str) -> timedelta:
    return SPORT_DURATIONS.get((sport or "").strip().lower(), DEFAULT_GAME_DURATION)


def game_room_expiry(game: Game, grace: timedelta = timedelta(hours=GAME_ROOM_GRACE_HOURS)) -> datetime:
    return game.start_time + estimated_duration(game.sport) + grace


def game_room_name(game: Game) -> str:
    return f"{game.home} vs {game.away}"


def game_room_id(game: Game) -> str:
    # kickoff stamp keeps the id clear of the random "-xxxxx" suffix pattern
    kickoff = game.start_time.astimezone(timezone.utc).strftime("%Y%m%d%H%M")
    return f"{slugify(game.sport)}-{slugify(game_room_name(game))}-{kickoff}"


def game_status(game_start: datetime, sport: str, now: datetime) -> str:
    if now < game_start:
        return "UPCOMING"
    if now < game_start + estimated_duration(sport):
        return "LIVE"
    return "FINAL"


def open_game_room(registry: RoomRegistry, game: Game) -> Tuple[Room, bool]:
    """Return the live room for a game, creating it if needed.

    The room expires a grace period after the game's estimated end instead of
    the default room lifetime.
    """
    room_id = game_room_id(game)
    room = registry.rooms.get(room_id)
    if room is not None and not registry.is_expired(room):
        return room, False
    if room is not None:
        registry.archive_room(room_id)

    expires_at = game_room_expiry(game)
    if expires_at <= registry.now():
        raise InvalidInput(f"Game {game.home} vs {game.away} has already finished")
    return registry.create_room(game_room_name(game), expires_at=expires_at, room_id=room_id), True


def _parse_start(event: dict) -> Optional[datetime]:
    raw = event.get("strTimestamp")
    if not raw and event.get("dateEvent"):
        raw = f"{event['dateEvent']}T{event.get('strTime') or '00:00:00'}"
    if not raw:
        return None
    try:
        start = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return start


class GameFeed:
    """Fetches games for a time window from TheSportsDB, one request per sport and day."""

    def __init__(self, base_url: str = SPORTSDB_URL, sports: Optional[List[str]] = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None,
                 clock=None):
        self.base_url = base_url.rstrip("/")
        self.sports = sports or GAME_FEED_SPORTS
        self.timeout = timeout
        self.transport = transport
        self.clock = clock

    def _now(self) -> datetime:
        return self.clock.now() if self.clock else datetime.now(timezone.utc)

    async def _events_for_day(self, client: httpx.AsyncClient, day: str, sport: str) -> List[dict]:
        try:
            resp = await client.get(f"{self.base_url}/eventsday.php", params={"d": day, "s": sport})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Games feed returned {e.response.status_code}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Games feed request failed: {e}") from e
        return (resp.json() or {}).get("events") or []

    def _to_game(self, event: dict, now: datetime) -> Optional[Game]:
        start = _parse_start(event)
        home, away = event.get("strHomeTeam"), event.get("strAwayTeam")
        if start is None or not home or not away:
            logger.debug(f"Skipping incomplete event {event.get('idEvent')}")
            return None
        sport = event.get("strSport") or "Unknown"
        return Game(
            id=str(event.get("idEvent") or f"{home}-{away}-{start.isoformat()}"),
            sport=sport,
            league=event.get("strLeague"),
            home=home,
            away=away,
            start_time=start,
            status=game_status(start, sport, now),
        )

    async def upcoming(self, team: Optional[str] = None, hours: int = 24) -> List[Game]:
        now = self._now()
        window_end = now + timedelta(hours=hours)
        days = sorted({(now + timedelta(days=i)).date().isoformat() for i in range(hours // 24 + 1)}
                      | {window_end.date().isoformat()})
        wanted_team = team.strip().lower() if team else None

        games = {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for sport in self.sports:
                for day in days:
                    for event in await self._events_for_day(client, day, sport):
                        game = self._to_game(event, now)
                        if game is None or game.status == "FINAL" or game.start_time > window_end:
                            continue
                        if wanted_team and wanted_team not in game.home.lower() and wanted_team not in game.away.lower():
                            continue
                        games[game.id] = game

        logger.info(f"Games feed returned {len(games)} games for team={team}, hours={hours}")
        return sorted(games.values(), key=lambda g: g.start_time)

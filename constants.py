import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# "memory" keeps fan-out in process, "redis" routes it through Redis pub/sub
PUBSUB_BACKEND = os.getenv("PUBSUB_BACKEND", "memory")

ROOM_TTL_MINUTES = int(os.getenv("ROOM_TTL_MINUTES", 90))
REAPER_INTERVAL_SECONDS = float(os.getenv("REAPER_INTERVAL_SECONDS", 60))
GAME_ROOM_GRACE_HOURS = int(os.getenv("GAME_ROOM_GRACE_HOURS", 24))

LOBBY_ID = "global-lobby"
LOBBY_NAME = "global"
LOBBY_ALIASES = {"global", "global lobby", "global-lobby"}
PROTECTED_ROOM_IDS = {"global", "global-lobby"}

SPORTSDB_URL = os.getenv("SPORTSDB_URL", "https://www.thesportsdb.com/api/v1/json/3")
GAME_FEED_SPORTS = [s.strip() for s in os.getenv("GAME_FEED_SPORTS", "Soccer,Basketball").split(",") if s.strip()]

USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", None)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

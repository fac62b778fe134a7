from contextlib import asynccontextmanager
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import create_broker
from constants import CORS_ORIGINS, REAPER_INTERVAL_SECONDS
from games import GameFeed
from gateway import BroadcastGateway
from reaper import Reaper
from registry import RoomRegistry
from routers.games import games_router
from routers.realtime import realtime_router
from routers.rooms import rooms_router
from routers.users import users_router
from users import create_user_directory
from logging_config import get_logger, setup_logging

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.broker.start()
    app.state.reaper.start()
    logger.info("FanRooms started")
    yield
    await app.state.reaper.stop()
    await app.state.broker.stop()
    logger.info("FanRooms stopped")


def create_app(registry=None, broker=None, game_feed=None, user_directory=None,
               reaper_interval: float = REAPER_INTERVAL_SECONDS) -> FastAPI:
    """Build the application with one registry shared by every handler."""
    app = FastAPI(title="FanRooms", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry or RoomRegistry()
    app.state.broker = broker or create_broker()
    app.state.user_directory = user_directory if user_directory is not None else create_user_directory()
    app.state.game_feed = game_feed or GameFeed()
    app.state.gateway = BroadcastGateway(app.state.registry, app.state.broker, app.state.user_directory)
    app.state.reaper = Reaper(app.state.registry, app.state.gateway, interval=reaper_interval)

    app.include_router(rooms_router)
    app.include_router(users_router)
    app.include_router(games_router)
    app.include_router(realtime_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info("FastAPI application initialized")
    return app


app = create_app()

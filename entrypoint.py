import uvicorn
import os
from logging_config import setup_logging

# Setup logging before importing app
log_level = os.getenv("LOG_LEVEL", "DEBUG")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from constants import PUBSUB_BACKEND
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5001))
    logger.info(f"Starting FanRooms server on {host}:{port} (pub/sub backend: {PUBSUB_BACKEND})")
    # one worker: rooms live in this process's memory
    uvicorn.run("app:app", host=host, port=port, workers=1, reload=os.getenv("RELOAD", "0") == "1")


if __name__ == "__main__":
    main()

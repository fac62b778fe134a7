import asyncio
import json
from typing import Callable, Optional

import redis
import redis.asyncio as aioredis

from constants import PUBSUB_BACKEND, REDIS_HOST, REDIS_PASSWORD, REDIS_PORT
from redis_keys import REDIS_BROADCAST_CHANNEL, REDIS_ROOM_CHANNEL, REDIS_ROOM_CHANNEL_PATTERN
from logging_config import get_logger

logger = get_logger(__name__)

# deliver(room_id or None, envelope); None means every connected session
Deliver = Callable[[Optional[str], dict], None]


class LocalBroker:
    """In-process pub/sub: published envelopes are delivered immediately."""

    def __init__(self):
        self._deliver: Optional[Deliver] = None

    def bind(self, deliver: Deliver):
        self._deliver = deliver

    async def start(self):
        logger.info("Using in-process pub/sub broker")

    def publish(self, room_id: Optional[str], envelope: dict):
        if self._deliver is None:
            logger.warning(f"Dropping {envelope.get('event')} event, broker is not bound")
            return
        self._deliver(room_id, envelope)

    async def stop(self):
        pass


class RedisBroker:
    """Redis pub/sub fan-out.

    Publishing only enqueues; a single publisher task drains the queue over one
    connection so that events for a room reach Redis in publish order. A
    listener task receives every room channel plus the broadcast channel and
    hands envelopes back to the gateway.
    """

    def __init__(self, host: str = REDIS_HOST, port: int = REDIS_PORT, password: Optional[str] = REDIS_PASSWORD):
        self.host = host
        self.port = port
        self.redis_client = aioredis.Redis(host=host, port=port, password=password, decode_responses=True)
        self._deliver: Optional[Deliver] = None
        self._outgoing: Optional[asyncio.Queue] = None
        self._pubsub = None
        self._tasks = []
        logger.info(f"Initializing RedisBroker with connection to {host}:{port}")

    def bind(self, deliver: Deliver):
        self._deliver = deliver

    @staticmethod
    def channel_for(room_id: Optional[str]) -> str:
        if room_id is None:
            return REDIS_BROADCAST_CHANNEL
        return REDIS_ROOM_CHANNEL.format(slug=room_id)

    @staticmethod
    def room_id_for(channel: str) -> Optional[str]:
        if channel == REDIS_BROADCAST_CHANNEL:
            return None
        prefix = REDIS_ROOM_CHANNEL.format(slug="")
        return channel[len(prefix):] if channel.startswith(prefix) else None

    async def start(self):
        try:
            await self.redis_client.ping()
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis at {self.host}:{self.port}: {e}", exc_info=True)
            raise
        logger.info(f"Redis client connected successfully to {self.host}:{self.port}")

        self._outgoing = asyncio.Queue()
        self._pubsub = self.redis_client.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.psubscribe(REDIS_ROOM_CHANNEL_PATTERN)
        await self._pubsub.subscribe(REDIS_BROADCAST_CHANNEL)
        logger.debug(f"Subscribed to {REDIS_ROOM_CHANNEL_PATTERN} and {REDIS_BROADCAST_CHANNEL}")

        self._tasks = [
            asyncio.create_task(self._publish_loop()),
            asyncio.create_task(self._listen_loop()),
        ]

    def publish(self, room_id: Optional[str], envelope: dict):
        if self._outgoing is None:
            logger.warning(f"Dropping {envelope.get('event')} event, Redis broker is not started")
            return
        self._outgoing.put_nowait((self.channel_for(room_id), json.dumps(envelope)))

    async def _publish_loop(self):
        while True:
            channel, data = await self._outgoing.get()
            try:
                subscribers = await self.redis_client.publish(channel, data)
                logger.debug(f"Published to channel {channel}, {subscribers} subscribers")
            except redis.RedisError as e:
                logger.error(f"Error publishing to channel {channel}: {e}", exc_info=True)

    async def _listen_loop(self):
        try:
            async for message in self._pubsub.listen():
                if message.get("type") not in ("message", "pmessage"):
                    continue
                self.dispatch(message["channel"], message["data"])
        except redis.RedisError as e:
            logger.error(f"Redis listener stopped: {e}", exc_info=True)

    def dispatch(self, channel: str, data: str):
        try:
            envelope = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing message from Redis channel {channel}: {e}")
            return
        if self._deliver is not None:
            self._deliver(self.room_id_for(channel), envelope)

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        if self._pubsub is not None:
            await self._pubsub.aclose()
            logger.debug("Closed Redis pub/sub connection")
        await self.redis_client.aclose()


def create_broker(kind: str = PUBSUB_BACKEND):
    if kind == "redis":
        return RedisBroker()
    if kind != "memory":
        logger.warning(f"Unknown PUBSUB_BACKEND {kind!r}, falling back to in-process broker")
    return LocalBroker()

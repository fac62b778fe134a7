import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from gateway import Session
from logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


async def pump_outbox(websocket: WebSocket, session: Session):
    """Write queued events to the socket in the order they were queued."""
    while True:
        envelope = await session.outbox.get()
        try:
            await websocket.send_text(json.dumps(envelope))
        except Exception as e:
            logger.debug(f"Stopped sending to session {session.id}: {e}")
            return


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel. Frames are JSON envelopes: {"event": ..., "payload": ...}."""
    gateway = websocket.app.state.gateway
    await websocket.accept()
    session = Session()
    gateway.connect(session)
    logger.info(f"WebSocket connection accepted for session {session.id}")
    sender = asyncio.create_task(pump_outbox(websocket, session))

    try:
        while True:
            data = await websocket.receive_text()
            try:
                envelope = json.loads(data)
            except json.JSONDecodeError:
                logger.debug(f"Dropping non-JSON frame from session {session.id}")
                continue
            await gateway.receive(session, envelope)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for session {session.id}")
    except Exception as e:
        logger.error(f"Error in WebSocket session {session.id}: {e}", exc_info=True)
    finally:
        gateway.on_disconnect(session)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass

"""
WebSocket endpoint for random one-to-one chat.

Handles:
- Token-based admission (once per connection)
- JSON event frames ({"type": ..., "data": {...}})
- Full cleanup on disconnect
"""

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from pairchat.api.deps import GatewayDep, HubDep
from pairchat.schemas.chat import ChatStats
from pairchat.services.gateway import GatewayError

router = APIRouter()
logger = logging.getLogger(__name__)


def _bearer_token(websocket: WebSocket) -> Optional[str]:
    header = websocket.headers.get("authorization")
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def _parse_frame(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    hub: HubDep,
    gateway: GatewayDep,
    token: Optional[str] = Query(None),
):
    """
    Random-chat event stream.

    Protocol:
    1. Client connects with ``?token=`` (or a bearer Authorization header)
    2. Refused connections are closed with 1008 before any event is read
    3. Client declares presence with ``announce-online`` and pairs with ``join-queue``
    4. Server pushes ``matched``, ``chat-message``, signaling and ``online-count`` frames
    """
    try:
        context = await gateway.authenticate(token or _bearer_token(websocket))
    except GatewayError as exc:
        logger.info("Chat: refusing connection: %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
        return

    # Registered before accept so peers can address this socket as soon as
    # the client sees the handshake complete.
    outbox = await hub.connect(context)
    writer: Optional[asyncio.Task] = None
    try:
        await websocket.accept()
        writer = asyncio.create_task(hub.pump(websocket, context, outbox))
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            # Binary frames carry no "text" and are answered as malformed.
            await hub.handle(context, _parse_frame(message.get("text")))
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Chat: connection %s failed", context.connection_id)
        with suppress(Exception):
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        await hub.disconnect(context)
        if writer is not None:
            writer.cancel()
            with suppress(asyncio.CancelledError):
                await writer


@router.get("/stats", response_model=ChatStats)
async def chat_stats(hub: HubDep) -> ChatStats:
    return hub.stats()

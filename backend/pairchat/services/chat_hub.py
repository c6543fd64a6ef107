"""
In-process hub for random-chat WebSocket connections.

Owns the shared ``ChatState`` and serializes every mutation behind a single
lock. Outbound messages are queued per connection while the lock is held, so
each recipient sees messages in the order the state changes happened; a
writer task per connection drains its queue onto the socket.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from pairchat.schemas.chat import ChatStats
from pairchat.services.chat_events import ChatState, Outbound, dispatch, handle_disconnect
from pairchat.services.gateway import ConnectionContext

logger = logging.getLogger(__name__)

Outbox = asyncio.Queue  # queue of envelope dicts, ``None`` stops the writer


def envelope(message: Outbound) -> Dict[str, Any]:
    return {
        "type": message.type.value,
        "data": message.data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ChatHub:
    def __init__(self, state: Optional[ChatState] = None) -> None:
        self.state = state or ChatState()
        self._outboxes: Dict[str, Outbox] = {}
        self._lock = asyncio.Lock()

    async def connect(self, context: ConnectionContext) -> Outbox:
        """Admit an authenticated connection and return its outbox."""
        outbox: Outbox = asyncio.Queue()
        async with self._lock:
            self.state.add_connection(context)
            self._outboxes[context.connection_id] = outbox
        logger.info("User %s connected (connection %s)", context.user_id, context.connection_id)
        return outbox

    async def handle(self, context: ConnectionContext, frame: Any) -> None:
        async with self._lock:
            if context.connection_id not in self.state.connections:
                return
            self._deliver(dispatch(self.state, context, frame))

    async def disconnect(self, context: ConnectionContext) -> None:
        """Run the full cleanup for a closed connection.

        Presence, queue entry and session membership are removed in the same
        critical section so no other event observes a partial cleanup.
        """
        async with self._lock:
            if context.connection_id not in self.state.connections:
                return
            messages = handle_disconnect(self.state, context)
            outbox = self._outboxes.pop(context.connection_id, None)
            self._deliver(messages)
        if outbox is not None:
            outbox.put_nowait(None)
        logger.info("User %s disconnected (connection %s)", context.user_id, context.connection_id)

    def _deliver(self, messages: Iterable[Outbound]) -> None:
        for message in messages:
            if message.is_broadcast:
                targets = list(self._outboxes.values())
            else:
                outbox = self._outboxes.get(message.connection_id)
                if outbox is None:
                    logger.debug("Dropping %s for closed connection %s", message.type.value, message.connection_id)
                    continue
                targets = [outbox]
            payload = envelope(message)
            for outbox in targets:
                outbox.put_nowait(payload)

    async def pump(self, websocket: WebSocket, context: ConnectionContext, outbox: Outbox) -> None:
        """Write queued messages to *websocket* until the outbox is closed.

        A failed send detaches the outbox so nothing more is queued for it;
        the receive loop still runs the disconnect cleanup.
        """
        while True:
            payload = await outbox.get()
            if payload is None:
                return
            try:
                await websocket.send_json(payload)
            except Exception:
                logger.debug("Failed to deliver %s to %s", payload.get("type"), context.connection_id)
                if self._outboxes.get(context.connection_id) is outbox:
                    del self._outboxes[context.connection_id]
                return

    def stats(self) -> ChatStats:
        return ChatStats(
            online_count=self.state.online_count(),
            queue_length=len(self.state.queue),
            active_sessions=len(self.state.sessions),
            connections=len(self.state.connections),
        )

"""
Event handlers for the random-chat protocol.

Each handler takes the shared ``ChatState``, the sender's
``ConnectionContext`` and the frame payload, applies its mutation to the
state and returns the outbound messages it produced. Handlers never touch a
socket, so the whole protocol can be exercised without a transport. Callers
are responsible for serializing calls (see ``ChatHub``).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from pairchat.core.config import settings
from pairchat.core.messages import ProtocolMessages, SessionMessages
from pairchat.schemas.chat import (
    ChatEvent,
    ChatMessageIn,
    ClientFrame,
    PrivateMessageIn,
    SessionScoped,
    SignalIn,
)
from pairchat.services.content_filter import filter_bad_words
from pairchat.services.gateway import ConnectionContext
from pairchat.services.matching import MatchingQueue, QueueEntry
from pairchat.services.presence import PresenceRegistry
from pairchat.services.sessions import ChatSession, EndReason, Participant, SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outbound:
    """A message to deliver; ``connection_id=None`` means every connection."""

    type: ChatEvent
    data: Dict[str, Any]
    connection_id: Optional[str] = None

    @property
    def is_broadcast(self) -> bool:
        return self.connection_id is None


@dataclass
class ChatState:
    presence: PresenceRegistry = field(default_factory=PresenceRegistry)
    queue: MatchingQueue = field(default_factory=MatchingQueue)
    sessions: SessionRegistry = field(default_factory=SessionRegistry)
    connections: Dict[str, ConnectionContext] = field(default_factory=dict)
    user_connections: Dict[str, Set[str]] = field(default_factory=dict)

    def online_count(self) -> int:
        return self.presence.count(len(self.queue), len(self.sessions))

    def add_connection(self, context: ConnectionContext) -> None:
        self.connections[context.connection_id] = context
        self.user_connections.setdefault(context.user_id, set()).add(context.connection_id)

    def remove_connection(self, context: ConnectionContext) -> None:
        self.connections.pop(context.connection_id, None)
        sockets = self.user_connections.get(context.user_id)
        if sockets is None:
            return
        sockets.discard(context.connection_id)
        if not sockets:
            del self.user_connections[context.user_id]

    def connections_for_user(self, user_id: str) -> Set[str]:
        return set(self.user_connections.get(user_id, set()))


Handler = Callable[[ChatState, ConnectionContext, Dict[str, Any]], List[Outbound]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def online_count_broadcast(state: ChatState) -> Outbound:
    return Outbound(ChatEvent.online_count, {"count": state.online_count()})


def error_reply(context: ConnectionContext, detail: str) -> Outbound:
    return Outbound(ChatEvent.error, {"detail": detail}, context.connection_id)


# ---------------------------------------------------------------------------
# Shared state transitions
# ---------------------------------------------------------------------------


def _participant(entry: QueueEntry) -> Participant:
    return Participant(
        user_id=entry.user_id,
        connection_id=entry.connection_id,
        alias=entry.alias,
        institution=entry.institution,
    )


def _matched_messages(session: ChatSession) -> List[Outbound]:
    messages = []
    for participant, peer, initiator in (
        (session.initiator, session.responder, True),
        (session.responder, session.initiator, False),
    ):
        messages.append(
            Outbound(
                ChatEvent.matched,
                {
                    "session_id": session.id,
                    "peer": {"alias": peer.alias, "institution": peer.institution},
                    "initiator": initiator,
                },
                participant.connection_id,
            )
        )
    return messages


def _end_session(
    state: ChatState,
    session_id: str,
    reason: EndReason,
    ended_by: Optional[ConnectionContext] = None,
) -> List[Outbound]:
    """End *session_id* and tell every other live participant connection why.

    The connection that ended the session is not notified. If *ended_by*'s
    user is still in the session through another connection, that connection
    is told the chat was ended elsewhere.
    """
    session = state.sessions.end(session_id, reason)
    if session is None:
        return []
    logger.info("Session %s ended (%s)", session.id, reason.value)
    messages = []
    for participant in session.participants:
        if participant.connection_id not in state.connections:
            continue
        if ended_by is not None and participant.connection_id == ended_by.connection_id:
            continue
        if ended_by is not None and participant.user_id == ended_by.user_id:
            message = SessionMessages.ENDED_ELSEWHERE
        else:
            message = reason.peer_message
        body = {"session_id": session.id, "reason": reason.value, "message": message}
        messages.append(Outbound(ChatEvent.session_ended, body, participant.connection_id))
    return messages


def _end_session_for(
    state: ChatState,
    context: ConnectionContext,
    reason: EndReason,
    session_id: Optional[str] = None,
) -> List[Outbound]:
    """End the session *context*'s user belongs to, optionally only if it is *session_id*."""
    session = state.sessions.session_for_user(context.user_id)
    if session is None or (session_id is not None and session.id != session_id):
        return []
    return _end_session(state, session.id, reason, ended_by=context)


def _pair_waiting_users(state: ChatState) -> List[Outbound]:
    messages: List[Outbound] = []
    while True:
        pair = state.queue.dequeue_pair()
        if pair is None:
            return messages
        initiator, responder = pair
        session = state.sessions.create(_participant(initiator), _participant(responder))
        logger.info(
            "Matched %s (initiator) with %s in session %s",
            initiator.user_id,
            responder.user_id,
            session.id,
        )
        messages.extend(_matched_messages(session))


def _enqueue(state: ChatState, context: ConnectionContext) -> List[Outbound]:
    """Enroll *context*'s user, dropping any stale queue entry or session first."""
    messages = _end_session_for(state, context, EndReason.skipped)
    state.queue.remove(context.user_id)
    state.queue.enqueue(context.user_id, context.connection_id, context.alias, context.institution)
    messages.extend(_pair_waiting_users(state))
    messages.append(online_count_broadcast(state))
    return messages


def _session_peers(state: ChatState, context: ConnectionContext, session_id: str) -> List[str]:
    """Connection ids to forward to, or an empty list if the sender is not a member."""
    session = state.sessions.get(session_id)
    sender = session.participant(context.user_id) if session is not None else None
    if sender is None:
        return []
    return sorted(
        connection_id
        for connection_id in state.sessions.members(session_id)
        if connection_id not in (sender.connection_id, context.connection_id)
        and connection_id in state.connections
    )


def _user_peers(state: ChatState, context: ConnectionContext, peer_id: str) -> List[str]:
    return sorted(
        connection_id
        for connection_id in state.connections_for_user(peer_id)
        if connection_id != context.connection_id
    )


def _clean_text(text: str) -> Optional[str]:
    if not text or not text.strip():
        return None
    return filter_bad_words(text[: settings.CHAT_MESSAGE_MAX_LENGTH])


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_announce_online(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    state.presence.register(context.user_id)
    return [online_count_broadcast(state)]


def handle_join_queue(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    return _enqueue(state, context)


def handle_leave_queue(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    if state.queue.remove(context.user_id) is None:
        return []
    return [online_count_broadcast(state)]


def handle_skip(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    payload = SessionScoped.model_validate(data)
    messages = _end_session_for(state, context, EndReason.skipped, payload.session_id)
    messages.extend(_enqueue(state, context))
    return messages


def handle_end_session(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    payload = SessionScoped.model_validate(data)
    messages = _end_session_for(state, context, EndReason.ended, payload.session_id)
    state.queue.remove(context.user_id)
    messages.append(online_count_broadcast(state))
    return messages


def handle_chat_message(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    payload = ChatMessageIn.model_validate(data)
    text = _clean_text(payload.text)
    if text is None:
        return []
    body = {
        "session_id": payload.session_id,
        "sender": context.alias,
        "text": text,
        "timestamp": _now(),
    }
    return [
        Outbound(ChatEvent.chat_message, body, connection_id)
        for connection_id in _session_peers(state, context, payload.session_id)
    ]


def _typing_handler(event: ChatEvent) -> Handler:
    def handler(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
        payload = SessionScoped.model_validate(data)
        body = {"session_id": payload.session_id, "user": context.alias}
        return [
            Outbound(event, body, connection_id)
            for connection_id in _session_peers(state, context, payload.session_id)
        ]

    return handler


def _signal_handler(event: ChatEvent) -> Handler:
    def handler(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
        payload = SignalIn.model_validate(data)
        if payload.session_id:
            targets = _session_peers(state, context, payload.session_id)
            body = {"from": context.user_id, "session_id": payload.session_id, "payload": payload.payload}
        else:
            targets = _user_peers(state, context, payload.peer_id)
            body = {"from": context.user_id, "payload": payload.payload}
        if not targets:
            logger.debug("Dropping %s from %s: no recipient connected", event.value, context.user_id)
        return [Outbound(event, body, connection_id) for connection_id in targets]

    return handler


def handle_private_message(state: ChatState, context: ConnectionContext, data: Dict[str, Any]) -> List[Outbound]:
    payload = PrivateMessageIn.model_validate(data)
    text = _clean_text(payload.text)
    if text is None:
        return []
    body = {
        "sender": context.alias,
        "sender_id": context.user_id,
        "text": text,
        "timestamp": _now(),
    }
    return [
        Outbound(ChatEvent.private_message, body, connection_id)
        for connection_id in _user_peers(state, context, payload.peer_id)
    ]


def handle_disconnect(state: ChatState, context: ConnectionContext) -> List[Outbound]:
    """Drop every trace of *context*'s user and tell the live session connections they left."""
    state.remove_connection(context)
    state.presence.unregister(context.user_id)
    state.queue.remove(context.user_id)
    messages = _end_session_for(state, context, EndReason.disconnected)
    messages.append(online_count_broadcast(state))
    return messages


HANDLERS: Dict[ChatEvent, Handler] = {
    ChatEvent.announce_online: handle_announce_online,
    ChatEvent.join_queue: handle_join_queue,
    ChatEvent.leave_queue: handle_leave_queue,
    ChatEvent.skip: handle_skip,
    ChatEvent.end_session: handle_end_session,
    ChatEvent.send_chat_message: handle_chat_message,
    ChatEvent.typing_start: _typing_handler(ChatEvent.typing_start),
    ChatEvent.typing_stop: _typing_handler(ChatEvent.typing_stop),
    ChatEvent.signal_offer: _signal_handler(ChatEvent.signal_offer),
    ChatEvent.signal_answer: _signal_handler(ChatEvent.signal_answer),
    ChatEvent.signal_ice: _signal_handler(ChatEvent.signal_ice),
    ChatEvent.private_message: handle_private_message,
}


def dispatch(state: ChatState, context: ConnectionContext, frame: Any) -> List[Outbound]:
    """Route one inbound frame to its handler.

    Malformed frames and unknown event types produce an ``error`` reply to
    the sender and leave the state untouched.
    """
    try:
        parsed = ClientFrame.model_validate(frame)
    except ValidationError:
        return [error_reply(context, ProtocolMessages.INVALID_FRAME)]

    try:
        event = ChatEvent(parsed.type)
    except ValueError:
        return [error_reply(context, ProtocolMessages.UNKNOWN_EVENT)]

    handler = HANDLERS.get(event)
    if handler is None:
        return [error_reply(context, ProtocolMessages.UNKNOWN_EVENT)]

    try:
        return handler(state, context, parsed.data)
    except ValidationError as exc:
        logger.debug("Invalid %s payload from %s: %s", event.value, context.user_id, exc)
        return [error_reply(context, ProtocolMessages.INVALID_PAYLOAD)]

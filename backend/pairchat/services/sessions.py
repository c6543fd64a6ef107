"""Lifecycle of active pairings (chat rooms).

The registry is the only owner of ``ChatSession`` records. Connections refer
to a session by id, and the set of member connections for a session is
derived from the record itself rather than from transport-level groups.
"""

import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Set, Tuple

from pairchat.core.messages import SessionMessages


class SessionStatus(str, Enum):
    active = "active"
    ended = "ended"


class EndReason(str, Enum):
    ended = "ended"
    skipped = "skipped"
    disconnected = "disconnected"

    @property
    def peer_message(self) -> str:
        if self is EndReason.skipped:
            return SessionMessages.PEER_SKIPPED
        if self is EndReason.disconnected:
            return SessionMessages.PEER_LEFT
        return SessionMessages.PEER_ENDED


class SessionRegistryCorrupted(RuntimeError):
    """A generated session id collided with one already issued."""


@dataclass(frozen=True)
class Participant:
    user_id: str
    connection_id: str
    alias: str
    institution: str


@dataclass
class ChatSession:
    id: str
    initiator: Participant
    responder: Participant
    created_at: float
    ended_at: Optional[float] = None
    status: SessionStatus = SessionStatus.active
    end_reason: Optional[EndReason] = None

    @property
    def participants(self) -> Tuple[Participant, Participant]:
        return (self.initiator, self.responder)

    def participant(self, user_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None


def generate_session_id() -> str:
    return f"chat_{uuid.uuid4().hex}"


class SessionRegistry:
    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = generate_session_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._sessions: Dict[str, ChatSession] = {}
        self._by_user: Dict[str, str] = {}
        self._issued_ids: Set[str] = set()

    def create(self, initiator: Participant, responder: Participant) -> ChatSession:
        if initiator.user_id == responder.user_id:
            raise ValueError("A session needs two distinct users")
        for participant in (initiator, responder):
            if participant.user_id in self._by_user:
                raise SessionRegistryCorrupted(
                    f"User {participant.user_id} already belongs to session {self._by_user[participant.user_id]}"
                )

        session_id = self._id_factory()
        if session_id in self._issued_ids:
            raise SessionRegistryCorrupted(f"Session id {session_id} was already issued")
        self._issued_ids.add(session_id)

        session = ChatSession(
            id=session_id,
            initiator=initiator,
            responder=responder,
            created_at=self._clock(),
        )
        self._sessions[session_id] = session
        self._by_user[initiator.user_id] = session_id
        self._by_user[responder.user_id] = session_id
        return session

    def end(self, session_id: str, reason: EndReason) -> Optional[ChatSession]:
        """Terminate and evict an active session.

        Unknown or already-ended ids return ``None``; racing ends from both
        participants are expected and harmless.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        for participant in session.participants:
            if self._by_user.get(participant.user_id) == session_id:
                del self._by_user[participant.user_id]
        session.status = SessionStatus.ended
        session.ended_at = self._clock()
        session.end_reason = reason
        return session

    def get(self, session_id: str) -> Optional[ChatSession]:
        return self._sessions.get(session_id)

    def session_for_user(self, user_id: str) -> Optional[ChatSession]:
        session_id = self._by_user.get(user_id)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def members(self, session_id: str) -> Set[str]:
        """Connection ids of everyone in *session_id* (empty when unknown)."""
        session = self._sessions.get(session_id)
        if session is None:
            return set()
        return {participant.connection_id for participant in session.participants}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

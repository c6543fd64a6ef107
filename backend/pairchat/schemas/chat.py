from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChatEvent(str, Enum):
    # client -> server
    announce_online = "announce-online"
    join_queue = "join-queue"
    leave_queue = "leave-queue"
    send_chat_message = "send-chat-message"
    skip = "skip"
    end_session = "end-session"
    # both directions
    typing_start = "typing-start"
    typing_stop = "typing-stop"
    signal_offer = "signal-offer"
    signal_answer = "signal-answer"
    signal_ice = "signal-ice"
    private_message = "private-message"
    # server -> client
    matched = "matched"
    online_count = "online-count"
    chat_message = "chat-message"
    session_ended = "session-ended"
    error = "error"


# ---------------------------------------------------------------------------
# Inbound frames
# ---------------------------------------------------------------------------


class ClientFrame(BaseModel):
    type: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def default_missing_data(cls, value: Any) -> Any:
        if isinstance(value, dict) and value.get("data") is None:
            return {**value, "data": {}}
        return value


class SessionScoped(BaseModel):
    model_config = ConfigDict(extra="ignore")

    session_id: str = Field(min_length=1)


class ChatMessageIn(SessionScoped):
    text: str


class SignalIn(BaseModel):
    """Signaling frame addressed either to a session or to a peer user."""

    model_config = ConfigDict(extra="ignore")

    session_id: Optional[str] = None
    peer_id: Optional[str] = None
    payload: Any = None

    @model_validator(mode="after")
    def require_scope(self) -> "SignalIn":
        if not self.session_id and not self.peer_id:
            raise ValueError("session_id or peer_id is required")
        return self


class PrivateMessageIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    peer_id: str = Field(min_length=1)
    text: str


# ---------------------------------------------------------------------------
# HTTP read models
# ---------------------------------------------------------------------------


class ChatStats(BaseModel):
    online_count: int
    queue_length: int
    active_sessions: int
    connections: int

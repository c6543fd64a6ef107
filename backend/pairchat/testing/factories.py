"""
Test data factories for the chat core.

Each factory accepts overrides for any field so tests only spell out what
they care about.
"""

from typing import Any, Iterable, List

from pairchat.core.security import create_access_token
from pairchat.services.chat_events import ChatState, Outbound
from pairchat.services.gateway import ConnectionContext


def create_chat_token(user_id: str = "user-1", **overrides: Any) -> str:
    """
    Issue an access token with sensible identity claims.

    Example:
        token = create_chat_token("alice", banned=True)
    """
    claims = {
        "alias": f"Anon{user_id}",
        "institution": "Test University",
        "approved": True,
        "banned": False,
    }
    claims.update(overrides)
    return create_access_token(user_id, **claims)


def make_context(user_id: str = "user-1", **overrides: Any) -> ConnectionContext:
    defaults = {
        "user_id": user_id,
        "alias": f"Anon{user_id}",
        "institution": "Test University",
        "connection_id": f"conn-{user_id}",
    }
    defaults.update(overrides)
    return ConnectionContext(**defaults)


def make_state(*contexts: ConnectionContext) -> ChatState:
    """Build a state with *contexts* already connected."""
    state = ChatState()
    for context in contexts:
        state.add_connection(context)
    return state


def messages_for(messages: Iterable[Outbound], connection_id: str) -> List[Outbound]:
    """Messages addressed to *connection_id* directly (broadcasts excluded)."""
    return [message for message in messages if message.connection_id == connection_id]

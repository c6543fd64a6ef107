"""
Shared test utilities and factories.

Re-exports all factory functions for convenient imports:
    from pairchat.testing import make_context, create_chat_token
"""

from pairchat.testing.factories import (
    create_chat_token,
    make_context,
    make_state,
    messages_for,
)

__all__ = [
    "create_chat_token",
    "make_context",
    "make_state",
    "messages_for",
]

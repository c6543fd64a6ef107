"""
Randomized operation sequences against the chat state.

After every step a user must be in at most one of: the queue, a session.
"""

import random

import pytest

from pairchat.schemas.chat import ChatEvent
from pairchat.services.chat_events import ChatState, dispatch, handle_disconnect
from pairchat.testing import make_context


def _check_invariants(state: ChatState) -> None:
    queued = [entry.user_id for entry in state.queue.entries()]
    assert len(queued) == len(set(queued))
    assert len(queued) <= 1, "a second waiting user should have been paired"

    for user_id in queued:
        assert state.sessions.session_for_user(user_id) is None
    assert state.online_count() == len(queued) + 2 * len(state.sessions)


@pytest.mark.unit
@pytest.mark.parametrize("seed", range(20))
def test_random_sequences_keep_users_single_enrolled(seed: int) -> None:
    rng = random.Random(seed)
    state = ChatState()
    contexts = {name: make_context(name) for name in ("a", "b", "c", "d", "e")}
    connected = set()

    for _ in range(200):
        name = rng.choice(sorted(contexts))
        context = contexts[name]
        if name not in connected:
            state.add_connection(context)
            connected.add(name)
            continue

        action = rng.choice(["join", "skip", "end", "leave", "disconnect"])
        session = state.sessions.session_for_user(context.user_id)
        session_id = session.id if session else "chat_stale"
        if action == "join":
            dispatch(state, context, {"type": ChatEvent.join_queue.value})
        elif action == "skip":
            dispatch(state, context, {"type": ChatEvent.skip.value, "data": {"session_id": session_id}})
        elif action == "end":
            dispatch(state, context, {"type": ChatEvent.end_session.value, "data": {"session_id": session_id}})
        elif action == "leave":
            dispatch(state, context, {"type": ChatEvent.leave_queue.value})
        else:
            handle_disconnect(state, context)
            connected.discard(name)
            assert context.user_id not in state.queue
            assert state.sessions.session_for_user(context.user_id) is None
            assert not state.presence.is_online(context.user_id)

        _check_invariants(state)

from typing import Set


class PresenceRegistry:
    """Users that declared themselves online over a live connection."""

    def __init__(self) -> None:
        self._users: Set[str] = set()

    def register(self, user_id: str) -> bool:
        """Add *user_id*; returns ``False`` if it was already present."""
        if user_id in self._users:
            return False
        self._users.add(user_id)
        return True

    def unregister(self, user_id: str) -> bool:
        if user_id not in self._users:
            return False
        self._users.discard(user_id)
        return True

    def is_online(self, user_id: str) -> bool:
        return user_id in self._users

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)

    @staticmethod
    def count(queue_length: int, active_sessions: int) -> int:
        """Online count as announced to clients.

        Only waiting and paired users are counted; someone connected but
        idle does not show up here.
        """
        return queue_length + 2 * active_sessions

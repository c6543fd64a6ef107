"""FIFO queue of users waiting for a random partner."""

import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple


class AlreadyQueued(Exception):
    """Raised when a user with a pending entry is enqueued again."""


@dataclass(frozen=True)
class QueueEntry:
    user_id: str
    connection_id: str
    alias: str
    institution: str
    enqueued_at: float
    sequence: int = field(default=0, compare=False)

    @property
    def sort_key(self) -> Tuple[float, int]:
        return (self.enqueued_at, self.sequence)


class MatchingQueue:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, QueueEntry] = {}
        self._sequence = itertools.count()

    def enqueue(self, user_id: str, connection_id: str, alias: str, institution: str) -> QueueEntry:
        if user_id in self._entries:
            raise AlreadyQueued(user_id)
        entry = QueueEntry(
            user_id=user_id,
            connection_id=connection_id,
            alias=alias,
            institution=institution,
            enqueued_at=self._clock(),
            sequence=next(self._sequence),
        )
        self._entries[user_id] = entry
        return entry

    def dequeue_pair(self) -> Optional[Tuple[QueueEntry, QueueEntry]]:
        """Remove and return the two earliest entries as (initiator, responder).

        Returns ``None`` without touching the queue while fewer than two
        users are waiting.
        """
        if len(self._entries) < 2:
            return None
        initiator, responder = sorted(self._entries.values(), key=lambda entry: entry.sort_key)[:2]
        del self._entries[initiator.user_id]
        del self._entries[responder.user_id]
        return initiator, responder

    def remove(self, user_id: str) -> Optional[QueueEntry]:
        return self._entries.pop(user_id, None)

    def get(self, user_id: str) -> Optional[QueueEntry]:
        return self._entries.get(user_id)

    def entries(self) -> List[QueueEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.sort_key)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

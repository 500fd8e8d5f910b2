"""Rank index: the bounded, ordered score cache.

Entries are ordered by (score DESC, user_id ASC). Ranks are 0-based here;
the service layer converts them to 1-based positions.

`rank()` returning None is the cache-miss signal, not an error: the user may
have been evicted or never cached, and the caller falls back to PostgreSQL.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
import threading

from sortedcontainers import SortedList


class RankIndex(ABC):
    """Async interface shared by the in-memory and Redis rank indexes."""

    backend = "abstract"

    @abstractmethod
    async def insert_or_update(self, user_id: int, score: int) -> None:
        """Set the user's score, inserting the user if absent."""

    @abstractmethod
    async def evict_below(self, k: int) -> list[int]:
        """Drop every entry ranked at position >= k; return the evicted ids."""

    @abstractmethod
    async def rank(self, user_id: int) -> int | None:
        """0-based descending rank, or None when the user is not cached."""

    @abstractmethod
    async def score_of(self, user_id: int) -> int | None: ...

    @abstractmethod
    async def scores_of(self, user_ids: Sequence[int]) -> list[int | None]:
        """Scores aligned positionally with `user_ids`."""

    @abstractmethod
    async def range_by_rank(self, start: int, end: int) -> list[int]:
        """Ids ranked start..end inclusive, best first.

        Empty when start > end or the range lies outside the index; otherwise
        clamped to [0, size - 1].
        """

    @abstractmethod
    async def size(self) -> int: ...

    @abstractmethod
    async def clear(self) -> None: ...

    @abstractmethod
    async def bulk_load(self, entries: Iterable[tuple[int, int]]) -> None:
        """Insert many (user_id, score) pairs as one batch."""


def _clamp_range(start: int, end: int, size: int) -> tuple[int, int] | None:
    start = max(0, start)
    end = min(end, size - 1)
    if start > end:
        return None
    return start, end


class MemoryRankIndex(RankIndex):
    """Process-local rank index on a SortedList.

    The SortedList holds (-score, user_id) keys, so its natural ascending order
    is the leaderboard order and `bisect_left` gives a rank in O(log n).
    A dict keeps the current score per user for O(1) lookups and removals.

    One lock guards both structures; every public call is atomic.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._order = SortedList()
        self._scores: dict[int, int] = {}

    async def insert_or_update(self, user_id: int, score: int) -> None:
        with self._lock:
            self._put(user_id, score)

    def _put(self, user_id: int, score: int) -> None:
        previous = self._scores.get(user_id)
        if previous == score:
            return
        if previous is not None:
            self._order.remove((-previous, user_id))
        self._order.add((-score, user_id))
        self._scores[user_id] = score

    async def evict_below(self, k: int) -> list[int]:
        with self._lock:
            if len(self._order) <= k:
                return []
            evicted = [user_id for _, user_id in self._order.islice(max(k, 0))]
            del self._order[max(k, 0):]
            for user_id in evicted:
                del self._scores[user_id]
            return evicted

    async def rank(self, user_id: int) -> int | None:
        with self._lock:
            score = self._scores.get(user_id)
            if score is None:
                return None
            return self._order.bisect_left((-score, user_id))

    async def score_of(self, user_id: int) -> int | None:
        with self._lock:
            return self._scores.get(user_id)

    async def scores_of(self, user_ids: Sequence[int]) -> list[int | None]:
        with self._lock:
            return [self._scores.get(user_id) for user_id in user_ids]

    async def range_by_rank(self, start: int, end: int) -> list[int]:
        with self._lock:
            bounds = _clamp_range(start, end, len(self._order))
            if bounds is None:
                return []
            lo, hi = bounds
            return [user_id for _, user_id in self._order.islice(lo, hi + 1)]

    async def size(self) -> int:
        with self._lock:
            return len(self._order)

    async def clear(self) -> None:
        with self._lock:
            self._order.clear()
            self._scores.clear()

    async def bulk_load(self, entries: Iterable[tuple[int, int]]) -> None:
        with self._lock:
            for user_id, score in entries:
                self._put(user_id, score)

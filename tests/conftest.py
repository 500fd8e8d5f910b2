"""Shared fixtures: an in-memory user store and a minimal async Redis double.

Neither PostgreSQL nor Redis is needed to run the suite.
"""

from collections.abc import Callable

import pytest

from leaderboard.schemas import RankContext, RankedUser
from leaderboard.services.errors import DuplicateUserError, NotFoundError, PersistenceError
from leaderboard.services.leaderboard import LeaderboardService
from leaderboard.stores.metadata import MemoryMetadataTable
from leaderboard.stores.rank_index import MemoryRankIndex
from leaderboard.stores.users import UserRecord, split_context


class FakeUserStore:
    """`UserStore` over a dict, ranking with the same (score DESC, id ASC) order as SQL."""

    def __init__(self) -> None:
        self.users: dict[int, UserRecord] = {}
        self.calls: list[str] = []
        self.fail = False
        self._next_id = 1

    def seed(self, user_id: int, user_name: str, score: int, image_url: str = "") -> None:
        """Insert directly with an explicit id, bypassing the service."""
        self.users[user_id] = UserRecord(user_id, user_name, image_url, score)
        self._next_id = max(self._next_id, user_id + 1)

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise PersistenceError("database unavailable")

    def _ranked(self) -> list[RankedUser]:
        ordered = sorted(self.users.values(), key=lambda u: (-u.total_score, u.user_id))
        return [
            RankedUser(
                position=i + 1,
                user_id=u.user_id,
                user_name=u.user_name,
                image_url=u.image_url,
                total_score=u.total_score,
            )
            for i, u in enumerate(ordered)
        ]

    async def insert_user(self, user_name: str, score: int, image_url: str) -> int:
        self._check("insert_user")
        if any(u.user_name == user_name for u in self.users.values()):
            raise DuplicateUserError(f"User name {user_name!r} is already taken")
        user_id = self._next_id
        self.seed(user_id, user_name, score, image_url)
        return user_id

    async def update_score(self, user_id: int, score: int) -> UserRecord:
        self._check("update_score")
        current = self.users.get(user_id)
        if current is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        updated = UserRecord(user_id, current.user_name, current.image_url, score)
        self.users[user_id] = updated
        return updated

    async def query_top_n(self, n: int) -> list[RankedUser]:
        self._check("query_top_n")
        return self._ranked()[:n]

    async def query_rank_and_context(self, user_id: int, window: int) -> RankContext | None:
        self._check("query_rank_and_context")
        ranked = self._ranked()
        index = next((i for i, r in enumerate(ranked) if r.user_id == user_id), None)
        if index is None:
            return None
        rows = ranked[max(0, index - window) : index + window + 1]
        return split_context(user_id, rows)

    async def fetch_top_users(self, limit: int) -> list[UserRecord]:
        self._check("fetch_top_users")
        return [
            UserRecord(r.user_id, r.user_name, r.image_url, r.total_score)
            for r in self._ranked()[:limit]
        ]

    async def fetch_user_at(self, position: int) -> UserRecord | None:
        self._check("fetch_user_at")
        ranked = self._ranked()
        if not 1 <= position <= len(ranked):
            return None
        r = ranked[position - 1]
        return UserRecord(r.user_id, r.user_name, r.image_url, r.total_score)


class FakeRedisPipeline:
    """Buffers commands and runs them in order on execute()."""

    def __init__(self, client: "FakeRedis") -> None:
        self._client = client
        self._calls: list[tuple] = []

    async def __aenter__(self) -> "FakeRedisPipeline":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False

    def __getattr__(self, name: str):
        method = getattr(self._client, name)

        def buffered(*args, **kwargs):
            self._calls.append((method, args, kwargs))
            return self

        return buffered

    async def execute(self) -> list:
        results = [await method(*args, **kwargs) for method, args, kwargs in self._calls]
        self._calls.clear()
        return results


def _redis_range(start: int, end: int, length: int) -> tuple[int, int]:
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
    return start, min(end, length - 1)


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) for the cache backends."""

    def __init__(self) -> None:
        self.zsets: dict[str, dict[str, float]] = {}
        self.hashes: dict[str, dict[str, str]] = {}

    def _ascending(self, key: str) -> list[str]:
        zset = self.zsets.get(key, {})
        return [m for m, _ in sorted(zset.items(), key=lambda item: (item[1], item[0]))]

    def pipeline(self, transaction: bool = True) -> FakeRedisPipeline:
        return FakeRedisPipeline(self)

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for m in mapping if m not in zset)
        zset.update({m: float(s) for m, s in mapping.items()})
        return added

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        members = self._ascending(key)
        lo, hi = _redis_range(start, end, len(members))
        return members[lo : hi + 1] if lo <= hi else []

    async def zrevrange(self, key: str, start: int, end: int) -> list[str]:
        members = self._ascending(key)[::-1]
        lo, hi = _redis_range(start, end, len(members))
        return members[lo : hi + 1] if lo <= hi else []

    async def zremrangebyrank(self, key: str, start: int, end: int) -> int:
        doomed = await self.zrange(key, start, end)
        for member in doomed:
            del self.zsets[key][member]
        return len(doomed)

    async def zrevrank(self, key: str, member: str) -> int | None:
        members = self._ascending(key)[::-1]
        return members.index(member) if member in members else None

    async def zscore(self, key: str, member: str) -> float | None:
        return self.zsets.get(key, {}).get(member)

    async def zmscore(self, key: str, members: list[str]) -> list[float | None]:
        zset = self.zsets.get(key, {})
        return [zset.get(m) for m in members]

    async def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            removed += int(self.zsets.pop(key, None) is not None)
            removed += int(self.hashes.pop(key, None) is not None)
        return removed

    async def hset(self, key: str, field: str | None = None, value: str | None = None, mapping=None) -> int:
        data = self.hashes.setdefault(key, {})
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        added = sum(1 for f in items if f not in data)
        data.update(items)
        return added

    async def hget(self, key: str, field: str) -> str | None:
        return self.hashes.get(key, {}).get(field)

    async def hmget(self, key: str, fields: list[str]) -> list[str | None]:
        data = self.hashes.get(key, {})
        return [data.get(f) for f in fields]

    async def hdel(self, key: str, *fields: str) -> int:
        data = self.hashes.get(key, {})
        return sum(1 for f in fields if data.pop(f, None) is not None)

    async def hlen(self, key: str) -> int:
        return len(self.hashes.get(key, {}))


@pytest.fixture
def store() -> FakeUserStore:
    return FakeUserStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_service(store: FakeUserStore) -> Callable[..., LeaderboardService]:
    """Build an isolated service over the shared fake store."""

    def _make(cache_size: int = 3, context_window: int = 5, rank_index=None, metadata=None) -> LeaderboardService:
        return LeaderboardService(
            store,
            rank_index or MemoryRankIndex(),
            metadata or MemoryMetadataTable(),
            cache_size=cache_size,
            context_window=context_window,
        )

    return _make


@pytest.fixture
def service(make_service) -> LeaderboardService:
    return make_service(cache_size=3)

"""Redis-backed rank index and metadata table.

Lets several API processes share one ranking cache. The layout follows
the classic sorted-set leaderboard:
- ZADD / ZREVRANK / ZREVRANGE on `leaderboard:scores` for ranking (skip list, O(log n))
- HSET / HMGET on `users:metadata` for display attributes

Tie-break:
    Redis orders equal scores by member bytes, and ZREVRANGE reverses that.
    Members are therefore not the raw id but `MAX_MEMBER - user_id`,
    zero-padded to a fixed width: a lower id gives a lexicographically
    larger member, which ZREVRANGE returns first. The result is
    (score DESC, user_id ASC), the same order as the in-memory index and SQL.

Scores are stored as doubles, exact for integers up to 2**53.
"""

from collections.abc import Iterable, Sequence
import json

import redis.asyncio as redis

from leaderboard.stores.metadata import MetadataTable, UserMetadata
from leaderboard.stores.rank_index import RankIndex
from leaderboard.stores.redis import KEY_METADATA, KEY_SCORES

MEMBER_WIDTH = 19
MAX_MEMBER = 10**MEMBER_WIDTH - 1


def encode_member(user_id: int) -> str:
    return f"{MAX_MEMBER - user_id:0{MEMBER_WIDTH}d}"


def decode_member(member: str) -> int:
    return MAX_MEMBER - int(member)


class RedisRankIndex(RankIndex):
    backend = "redis"

    def __init__(self, client: redis.Redis, key: str = KEY_SCORES):
        self._redis = client
        self._key = key

    async def insert_or_update(self, user_id: int, score: int) -> None:
        await self._redis.zadd(self._key, {encode_member(user_id): score})

    async def evict_below(self, k: int) -> list[int]:
        # ZRANGE is ascending, so the lowest-ranked entries come first; keeping
        # the top k means removing ascending ranks 0 .. -(k+1).
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zrange(self._key, 0, -(k + 1))
            pipe.zremrangebyrank(self._key, 0, -(k + 1))
            evicted, _removed = await pipe.execute()
        return [decode_member(member) for member in evicted]

    async def rank(self, user_id: int) -> int | None:
        return await self._redis.zrevrank(self._key, encode_member(user_id))

    async def score_of(self, user_id: int) -> int | None:
        score = await self._redis.zscore(self._key, encode_member(user_id))
        return int(score) if score is not None else None

    async def scores_of(self, user_ids: Sequence[int]) -> list[int | None]:
        if not user_ids:
            return []
        scores = await self._redis.zmscore(self._key, [encode_member(u) for u in user_ids])
        return [int(score) if score is not None else None for score in scores]

    async def range_by_rank(self, start: int, end: int) -> list[int]:
        # Negative indexes mean "from the end" to Redis; clamp before asking.
        start = max(0, start)
        if end < start:
            return []
        members = await self._redis.zrevrange(self._key, start, end)
        return [decode_member(member) for member in members]

    async def size(self) -> int:
        return await self._redis.zcard(self._key)

    async def clear(self) -> None:
        await self._redis.delete(self._key)

    async def bulk_load(self, entries: Iterable[tuple[int, int]]) -> None:
        mapping = {encode_member(user_id): score for user_id, score in entries}
        if mapping:
            await self._redis.zadd(self._key, mapping)


def _dump_metadata(meta: UserMetadata) -> str:
    return json.dumps({"name": meta.user_name, "image": meta.image_url})


def _load_metadata(raw: str | None) -> UserMetadata | None:
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
        return None
    return UserMetadata(user_name=payload["name"], image_url=payload.get("image") or "")


class RedisMetadataTable(MetadataTable):
    backend = "redis"

    def __init__(self, client: redis.Redis, key: str = KEY_METADATA):
        self._redis = client
        self._key = key

    async def set(self, user_id: int, meta: UserMetadata) -> None:
        await self._redis.hset(self._key, str(user_id), _dump_metadata(meta))

    async def set_many(self, items: Iterable[tuple[int, UserMetadata]]) -> None:
        mapping = {str(user_id): _dump_metadata(meta) for user_id, meta in items}
        if mapping:
            await self._redis.hset(self._key, mapping=mapping)

    async def get(self, user_id: int) -> UserMetadata | None:
        return _load_metadata(await self._redis.hget(self._key, str(user_id)))

    async def multi_get(self, user_ids: Sequence[int]) -> list[UserMetadata | None]:
        if not user_ids:
            return []
        raw = await self._redis.hmget(self._key, [str(u) for u in user_ids])
        return [_load_metadata(value) for value in raw]

    async def remove(self, user_id: int) -> None:
        await self._redis.hdel(self._key, str(user_id))

    async def remove_many(self, user_ids: Sequence[int]) -> None:
        if user_ids:
            await self._redis.hdel(self._key, *[str(u) for u in user_ids])

    async def clear(self) -> None:
        await self._redis.delete(self._key)

    async def size(self) -> int:
        return await self._redis.hlen(self._key)

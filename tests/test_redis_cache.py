"""Tests for the Redis-backed rank index and metadata table (against a fake client)."""

import pytest

from leaderboard.stores.metadata import UserMetadata
from leaderboard.stores.redis import KEY_METADATA
from leaderboard.stores.redis_cache import (
    RedisMetadataTable,
    RedisRankIndex,
    decode_member,
    encode_member,
)


def test_member_encoding_round_trips_and_reverses_order():
    assert decode_member(encode_member(1)) == 1
    assert decode_member(encode_member(123456789)) == 123456789
    assert len(encode_member(1)) == len(encode_member(10**12))
    # Lower id must sort lexicographically higher so ZREVRANGE yields it first.
    assert encode_member(5) > encode_member(9) > encode_member(10)


@pytest.mark.asyncio
async def test_rank_index_tie_break_matches_memory_order(fake_redis):
    index = RedisRankIndex(fake_redis)
    for user_id, score in [(9, 100), (10, 100), (5, 100), (7, 250), (3, 40)]:
        await index.insert_or_update(user_id, score)

    assert await index.range_by_rank(0, 10) == [7, 5, 9, 10, 3]
    assert await index.rank(5) == 1
    assert await index.rank(42) is None
    assert await index.score_of(7) == 250
    assert await index.scores_of([3, 42]) == [40, None]
    assert await index.scores_of([]) == []


@pytest.mark.asyncio
async def test_rank_index_evicts_lowest_entries(fake_redis):
    index = RedisRankIndex(fake_redis)
    for user_id, score in [(1, 50), (2, 70), (3, 60), (4, 80)]:
        await index.insert_or_update(user_id, score)

    assert await index.evict_below(3) == [1]
    assert await index.range_by_rank(0, 10) == [4, 2, 3]
    assert await index.evict_below(3) == []
    assert await index.size() == 3


@pytest.mark.asyncio
async def test_rank_index_range_ignores_negative_end(fake_redis):
    index = RedisRankIndex(fake_redis)
    await index.bulk_load([(1, 10), (2, 20)])

    assert await index.range_by_rank(0, -1) == []
    assert await index.range_by_rank(-4, 0) == [2]
    assert await index.range_by_rank(1, 50) == [1]

    await index.clear()
    assert await index.size() == 0


@pytest.mark.asyncio
async def test_metadata_table_round_trip(fake_redis):
    table = RedisMetadataTable(fake_redis)
    await table.set(1, UserMetadata("alice", "https://img.example.com/a.png"))
    await table.set_many([(2, UserMetadata("bob")), (3, UserMetadata("carol"))])

    assert await table.get(1) == UserMetadata("alice", "https://img.example.com/a.png")
    assert await table.multi_get([3, 4, 2]) == [UserMetadata("carol"), None, UserMetadata("bob")]

    await table.remove_many([2, 3])
    assert await table.size() == 1
    await table.remove(1)
    assert await table.get(1) is None


@pytest.mark.asyncio
async def test_metadata_table_treats_corrupt_value_as_missing(fake_redis):
    table = RedisMetadataTable(fake_redis)
    await fake_redis.hset(KEY_METADATA, "1", "{not json")
    await fake_redis.hset(KEY_METADATA, "2", '{"image": "x"}')

    assert await table.multi_get([1, 2]) == [None, None]


@pytest.mark.asyncio
async def test_service_on_redis_backend(make_service, fake_redis):
    service = make_service(
        cache_size=3,
        rank_index=RedisRankIndex(fake_redis),
        metadata=RedisMetadataTable(fake_redis),
    )
    for i, score in enumerate([50, 70, 60, 80], start=1):
        await service.create_user(f"user{i}", score)

    top = await service.get_top_n(3)
    assert [(u.user_id, u.total_score, u.user_name) for u in top] == [
        (4, 80, "user4"),
        (2, 70, "user2"),
        (3, 60, "user3"),
    ]
    assert await service.metadata.get(1) is None

    stats = await service.cache_stats()
    assert stats.backend == "redis"
    assert stats.cached_users == 3


@pytest.mark.asyncio
async def test_service_on_redis_backend_backfills_after_score_drop(make_service, fake_redis):
    service = make_service(
        cache_size=3,
        rank_index=RedisRankIndex(fake_redis),
        metadata=RedisMetadataTable(fake_redis),
    )
    for i, score in enumerate([90, 80, 70, 60], start=1):
        await service.create_user(f"user{i}", score)

    await service.update_score(3, 10)

    top = await service.get_top_n(3)
    assert [(u.user_id, u.total_score, u.user_name) for u in top] == [
        (1, 90, "user1"),
        (2, 80, "user2"),
        (4, 60, "user4"),
    ]
    assert await service.metadata.get(3) is None

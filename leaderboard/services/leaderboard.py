"""Leaderboard service - coordinates PostgreSQL and the ranking cache.

Writes: PostgreSQL first (authoritative, transactional), then a best-effort
update of the rank index and metadata table, then the cache bound is enforced.
The cache is never updated ahead of a confirmed commit.

Reads: rank index first, metadata table for hydration, PostgreSQL only on a
cache miss or when the request is larger than the cache can hold.

Consistency:
    The cache is a possibly stale, possibly partial projection of the top K
    users. A failure between commit and cache update leaves that user stale
    until its next write or the next resync; it is logged, not raised.
    There is no cross-structure transaction, so a read may briefly see the
    rank index and metadata table disagree about one user.
"""

import asyncio
import logging

from leaderboard.schemas import CacheStats, RankContext, RankedUser
from leaderboard.services.resync import resync_cache
from leaderboard.services.validation import (
    validate_image_url,
    validate_limit,
    validate_score,
    validate_user_id,
    validate_user_name,
)
from leaderboard.settings import Settings, get_settings
from leaderboard.stores.metadata import MemoryMetadataTable, MetadataTable, UserMetadata
from leaderboard.stores.rank_index import MemoryRankIndex, RankIndex
from leaderboard.stores.users import SqlUserStore, UserStore

logger = logging.getLogger("uvicorn.error")

PLACEHOLDER_NAME = "Unknown"
DEFAULT_CACHE_SIZE = 10_000
DEFAULT_CONTEXT_WINDOW = 5


class LeaderboardService:
    """Ranked cache coordinator.

    Owns no state of its own beyond references to the injected store and
    cache structures, so tests can build isolated instances freely.
    """

    def __init__(
        self,
        store: UserStore,
        rank_index: RankIndex,
        metadata: MetadataTable,
        *,
        cache_size: int = DEFAULT_CACHE_SIZE,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
    ):
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")
        self.store = store
        self.rank_index = rank_index
        self.metadata = metadata
        self.cache_size = cache_size
        self.context_window = context_window

    # ============================================================
    # Writes
    # ============================================================

    async def create_user(self, user_name: str, score: int, image_url: str = "") -> int:
        """Add a new user to PostgreSQL, then to the ranking cache.

        Returns:
            The id assigned by PostgreSQL.

        Raises:
            ValidationError: Bad name, score or image URL (nothing touched).
            PersistenceError: Insert failed and was rolled back (cache untouched).
        """
        user_name = validate_user_name(user_name)
        score = validate_score(score)
        image_url = validate_image_url(image_url)

        user_id = await self.store.insert_user(user_name, score, image_url)

        await self._refresh_cache(user_id, score, UserMetadata(user_name, image_url))
        logger.info(f"User added successfully: {user_name} (ID: {user_id}, Score: {score})")
        return user_id

    async def update_score(self, user_id: int, score: int) -> None:
        """Set a user's total score in PostgreSQL, then in the ranking cache.

        Raises:
            ValidationError: Bad id or score.
            NotFoundError: No such user; rolled back, cache untouched.
            PersistenceError: Update failed and was rolled back.
        """
        user_id = validate_user_id(user_id)
        score = validate_score(score)

        record = await self.store.update_score(user_id, score)

        await self._refresh_cache(
            record.user_id,
            record.total_score,
            UserMetadata(record.user_name, record.image_url),
        )
        logger.info(f"Score updated successfully for user: {user_id}, New Score: {score}")

    async def _refresh_cache(self, user_id: int, score: int, meta: UserMetadata) -> None:
        """Upsert one user into the cache and re-enforce the bound.

        A user that does not make the top K is evicted straight away, which
        leaves the cache as if it had never been inserted. A cached user whose
        score drops to the tail of a full cache may now rank below someone who
        is only in PostgreSQL, so the true K-th user is pulled in first.
        """
        try:
            previous = await self.rank_index.score_of(user_id)
            await asyncio.gather(
                self.rank_index.insert_or_update(user_id, score),
                self.metadata.set(user_id, meta),
            )
            if previous is not None and score < previous:
                await self._backfill_tail(user_id)
            evicted = await self.rank_index.evict_below(self.cache_size)
            if evicted:
                await self.metadata.remove_many(evicted)
        except Exception:
            logger.exception(
                f"Ranking cache update failed for user {user_id}; "
                "entry stays stale until its next write or a resync"
            )

    async def _backfill_tail(self, user_id: int) -> None:
        """Load the K-th user from PostgreSQL when `user_id` sits last in a full cache.

        The following `evict_below` then drops whichever of the two ranks lower.
        """
        rank, size = await asyncio.gather(
            self.rank_index.rank(user_id),
            self.rank_index.size(),
        )
        if rank is None or size < self.cache_size or rank < self.cache_size - 1:
            return

        record = await self.store.fetch_user_at(self.cache_size)
        if record is None or record.user_id == user_id:
            return
        await asyncio.gather(
            self.rank_index.insert_or_update(record.user_id, record.total_score),
            self.metadata.set(record.user_id, UserMetadata(record.user_name, record.image_url)),
        )

    # ============================================================
    # Reads
    # ============================================================

    async def get_top_n(self, n: int) -> list[RankedUser]:
        """Top `n` users, best first, with 1-based positions.

        Requests larger than the cache bound cannot be answered from the
        cache by construction and go straight to PostgreSQL.
        """
        n = validate_limit(n)

        if n > self.cache_size:
            return await self.store.query_top_n(n)

        user_ids = await self.rank_index.range_by_rank(0, n - 1)
        if not user_ids:
            return []
        return await self._hydrate(user_ids, first_rank=0)

    async def get_rank_and_context(self, user_id: int) -> RankContext | None:
        """A user's position plus up to `context_window` neighbors each side.

        Returns:
            RankContext, or None when the user exists neither in the cache
            nor in PostgreSQL.
        """
        user_id = validate_user_id(user_id)

        rank, score, meta = await asyncio.gather(
            self.rank_index.rank(user_id),
            self.rank_index.score_of(user_id),
            self.metadata.get(user_id),
        )

        if rank is None or score is None:
            return await self.store.query_rank_and_context(user_id, self.context_window)

        if meta is None:
            meta = self._placeholder(user_id)
        user = RankedUser(
            position=rank + 1,
            user_id=user_id,
            user_name=meta.user_name,
            image_url=meta.image_url,
            total_score=score,
        )

        window = self.context_window
        size = await self.rank_index.size()
        above, below = await asyncio.gather(
            self._context_users(max(0, rank - window), rank - 1),
            self._context_users(rank + 1, min(rank + window, size - 1)),
        )
        return RankContext(user=user, above=above, below=below)

    async def _context_users(self, start: int, end: int) -> list[RankedUser]:
        if start > end:
            return []
        user_ids = await self.rank_index.range_by_rank(start, end)
        if not user_ids:
            return []
        return await self._hydrate(user_ids, first_rank=start)

    async def _hydrate(self, user_ids: list[int], *, first_rank: int) -> list[RankedUser]:
        """Attach metadata and scores to ranked ids.

        Positions are absolute: `first_rank` is the 0-based rank of the first id.
        A missing entry degrades to a placeholder instead of failing the response.
        """
        metas, scores = await asyncio.gather(
            self.metadata.multi_get(user_ids),
            self.rank_index.scores_of(user_ids),
        )

        results = []
        for offset, (user_id, meta, score) in enumerate(zip(user_ids, metas, scores)):
            if meta is None:
                meta = self._placeholder(user_id)
            results.append(
                RankedUser(
                    position=first_rank + offset + 1,
                    user_id=user_id,
                    user_name=meta.user_name,
                    image_url=meta.image_url,
                    total_score=score if score is not None else 0,
                )
            )
        return results

    @staticmethod
    def _placeholder(user_id: int) -> UserMetadata:
        logger.warning(f"Metadata missing for cached user {user_id}; using placeholder")
        return UserMetadata(user_name=PLACEHOLDER_NAME, image_url="")

    # ============================================================
    # Maintenance
    # ============================================================

    async def resync(self) -> int:
        """Rebuild the cache from PostgreSQL. Returns the number of users loaded."""
        return await resync_cache(
            self.store,
            self.rank_index,
            self.metadata,
            limit=self.cache_size,
        )

    async def cache_stats(self) -> CacheStats:
        cached_users, cached_metadata = await asyncio.gather(
            self.rank_index.size(),
            self.metadata.size(),
        )
        return CacheStats(
            backend=self.rank_index.backend,
            cached_users=cached_users,
            cached_metadata=cached_metadata,
            cache_size_limit=self.cache_size,
        )


def build_leaderboard_service(settings: Settings | None = None) -> LeaderboardService:
    """Wire the service from settings.

    The Redis backend expects `init_redis()` to have run already.
    """
    settings = settings or get_settings()

    rank_index: RankIndex
    metadata: MetadataTable
    if settings.cache_backend == "redis":
        from leaderboard.stores.redis import get_redis
        from leaderboard.stores.redis_cache import RedisMetadataTable, RedisRankIndex

        client = get_redis()
        rank_index = RedisRankIndex(client)
        metadata = RedisMetadataTable(client)
    else:
        rank_index = MemoryRankIndex()
        metadata = MemoryMetadataTable()

    return LeaderboardService(
        SqlUserStore(),
        rank_index,
        metadata,
        cache_size=settings.leaderboard_cache_size,
        context_window=settings.context_window,
    )

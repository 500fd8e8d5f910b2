"""Rebuild the ranking cache from PostgreSQL.

Flow:
1. Clear the rank index and the metadata table
2. Stream the top `limit` users in canonical order (score DESC, user_id ASC)
3. Bulk-load both structures, one batch each

Used on API startup, from the admin endpoint, and from scripts/resync_cache.py.
Reads running meanwhile may observe an empty or partially loaded cache; they
fall back to PostgreSQL on misses, so correctness does not depend on it.
"""

import asyncio
import logging

from leaderboard.stores.metadata import MetadataTable, UserMetadata
from leaderboard.stores.rank_index import RankIndex
from leaderboard.stores.users import UserStore

logger = logging.getLogger("uvicorn.error")


async def resync_cache(
    store: UserStore,
    rank_index: RankIndex,
    metadata: MetadataTable,
    *,
    limit: int,
) -> int:
    """Replace the cache contents with the current top `limit` users.

    Returns:
        Number of users loaded.
    """
    logger.info(f"Starting cache sync from database (limit={limit})...")

    await asyncio.gather(rank_index.clear(), metadata.clear())

    users = await store.fetch_top_users(limit)
    if not users:
        logger.info("No users found in database")
        return 0

    await rank_index.bulk_load((user.user_id, user.total_score) for user in users)
    await metadata.set_many(
        (user.user_id, UserMetadata(user_name=user.user_name, image_url=user.image_url))
        for user in users
    )

    logger.info(f"Cache synced successfully: {len(users)} users loaded")
    return len(users)

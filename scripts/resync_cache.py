#!/usr/bin/env python3
"""Rebuild the shared Redis ranking cache from PostgreSQL.

One-off / cron job for deployments running CACHE_BACKEND=redis. With the
default in-memory backend each API process owns its cache; use the admin
endpoint POST /api/admin/cache/resync instead.

Run:
  CACHE_BACKEND=redis python -m scripts.resync_cache
"""

import asyncio
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leaderboard.services.leaderboard import build_leaderboard_service  # noqa: E402
from leaderboard.settings import get_settings  # noqa: E402
from leaderboard.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from leaderboard.stores.redis import close_redis, init_redis  # noqa: E402


async def main() -> None:
    settings = get_settings()
    if settings.cache_backend != "redis":
        print({"ok": False, "reason": "CACHE_BACKEND is not redis; nothing shared to rebuild"})
        return

    await init_db()
    await ping_db()
    await init_redis()
    try:
        service = build_leaderboard_service(settings)
        loaded = await service.resync()
        stats = await service.cache_stats()
        print({"ok": True, "loaded": loaded, "cache": stats.model_dump()})
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""Seed the users table with random players.

Idempotent: names are deterministic (player_00001, ...) and existing rows
are skipped, so the script can be re-run to top up the table.

Usage:
    python -m scripts.seed
    SEED_USERS=50000 SEED_MAX_SCORE=5000 python -m scripts.seed
"""

import asyncio
import os
import random
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402
from sqlalchemy.dialects.postgresql import insert  # noqa: E402

from leaderboard.models import User  # noqa: E402
from leaderboard.stores.postgres import close_db, get_session, init_db  # noqa: E402

load_dotenv()

BATCH_SIZE = 1000


def build_users(count: int, max_score: int, seed: int) -> list[dict]:
    rng = random.Random(seed)
    return [
        {
            "user_name": f"player_{i:05d}",
            "total_score": rng.randint(0, max_score),
            "image_url": f"https://avatars.example.com/player_{i:05d}.png",
        }
        for i in range(1, count + 1)
    ]


async def main() -> None:
    count = int(os.getenv("SEED_USERS", "1000"))
    max_score = int(os.getenv("SEED_MAX_SCORE", "1000"))
    seed = int(os.getenv("SEED_RANDOM", "42"))

    await init_db()
    try:
        rows = build_users(count, max_score, seed)
        inserted = 0
        for start in range(0, len(rows), BATCH_SIZE):
            batch = rows[start : start + BATCH_SIZE]
            stmt = insert(User).values(batch).on_conflict_do_nothing(index_elements=["user_name"])
            async with get_session() as session:
                result = await session.execute(stmt)
                inserted += result.rowcount or 0
        print(f"Seeded {inserted} new users ({count - inserted} already present)")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

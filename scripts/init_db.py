#!/usr/bin/env python3
"""Create the users table and its ranking index.

For local development; deployed databases are managed with Alembic
(`alembic upgrade head`).

Run:
  python -m scripts.init_db
"""

import asyncio
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leaderboard.models import User  # noqa: E402,F401
from leaderboard.stores.postgres import close_db, create_tables, init_db, ping_db  # noqa: E402


async def main() -> None:
    await init_db()
    try:
        await ping_db()
        await create_tables()
        print("Database initialization completed successfully")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

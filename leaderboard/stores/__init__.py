"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, the users table, ranking queries
- Rank index + metadata table: the bounded ranking cache (memory or Redis)
- Redis: connection lifecycle for the shared cache backend

No coordination logic in stores - that belongs in services.
"""

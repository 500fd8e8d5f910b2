"""Admin endpoints for ranking cache maintenance.

These endpoints are intended for operators and manual testing.
In production, consider adding authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter, Depends

from leaderboard.routes.deps import get_leaderboard_service
from leaderboard.schemas import CacheStats, ResyncResponse
from leaderboard.services.leaderboard import LeaderboardService

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("/cache/resync", response_model=ResyncResponse)
async def trigger_resync(
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> ResyncResponse:
    """Rebuild the rank index and metadata table from PostgreSQL.

    Use after cache data loss or when the cache is suspected to have drifted.
    Reads stay available while it runs; they fall back to PostgreSQL on misses.
    """
    logger.info("Cache resync requested via admin endpoint")
    loaded = await service.resync()
    return ResyncResponse(message="Cache synced successfully", loaded=loaded)


@router.get("/cache/stats", response_model=CacheStats)
async def get_cache_stats(
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> CacheStats:
    """Current size of the ranking cache against its bound."""
    return await service.cache_stats()

"""API routes."""

from fastapi import APIRouter

from leaderboard.routes import admin, rankings, users

api_router = APIRouter()

# User writes (create, score update)
api_router.include_router(users.router, prefix="/api/users", tags=["users"])

# Ranking reads (top-N, rank context)
api_router.include_router(rankings.router, prefix="/api/leaderboard", tags=["leaderboard"])

# Admin endpoints (cache maintenance)
api_router.include_router(admin.router, prefix="/api/admin", tags=["admin"])

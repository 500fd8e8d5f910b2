"""Shared route dependencies."""

from fastapi import Request

from leaderboard.services.leaderboard import LeaderboardService


def get_leaderboard_service(request: Request) -> LeaderboardService:
    """The service instance created in the application lifespan."""
    return request.app.state.leaderboard

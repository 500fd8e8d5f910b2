"""Leaderboard read endpoints.

GET /api/leaderboard/top/{n}                - top N users by score
GET /api/leaderboard/user/{user_id}/context - a user's rank with neighbors above and below
"""

from fastapi import APIRouter, Depends, Path

from leaderboard.routes.deps import get_leaderboard_service
from leaderboard.schemas import ErrorResponse, RankContext, RankedUser
from leaderboard.services.errors import NotFoundError
from leaderboard.services.leaderboard import LeaderboardService

router = APIRouter()


@router.get("/top/{n}", response_model=list[RankedUser])
async def get_top_users(
    n: int = Path(description="Number of users to return"),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> list[RankedUser]:
    """Top N users, best first. Ties go to the lower user ID."""
    return await service.get_top_n(n)


@router.get(
    "/user/{user_id}/context",
    response_model=RankContext,
    responses={404: {"model": ErrorResponse}},
)
async def get_user_context(
    user_id: int = Path(description="User ID"),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> RankContext:
    """A user's position plus the users ranked directly above and below."""
    context = await service.get_rank_and_context(user_id)
    if context is None:
        raise NotFoundError(f"User {user_id} not found in leaderboard")
    return context

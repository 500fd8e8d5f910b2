"""User write endpoints.

POST /api/users                 - create a user with an initial score
PUT  /api/users/{user_id}/score - set a user's total score

Routers are thin: validation beyond request shape and all persistence
happen in LeaderboardService. Service errors are rendered by the handlers
registered in main.py.
"""

from fastapi import APIRouter, Depends, Path, status

from leaderboard.routes.deps import get_leaderboard_service
from leaderboard.schemas import (
    CreateUserRequest,
    CreateUserResponse,
    ErrorResponse,
    MessageResponse,
    UpdateScoreRequest,
)
from leaderboard.services.leaderboard import LeaderboardService

router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateUserResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_user(
    request: CreateUserRequest,
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> CreateUserResponse:
    """Create a user in PostgreSQL and the ranking cache."""
    user_id = await service.create_user(
        request.user_name,
        request.total_score,
        request.image_url,
    )
    return CreateUserResponse(message="User created successfully", user_id=user_id)


@router.put(
    "/{user_id}/score",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_user_score(
    request: UpdateScoreRequest,
    user_id: int = Path(description="User ID"),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> MessageResponse:
    """Replace the user's total score."""
    await service.update_score(user_id, request.total_score)
    return MessageResponse(message="Score updated successfully")

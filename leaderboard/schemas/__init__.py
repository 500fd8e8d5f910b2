"""Pydantic schemas for API request/response validation."""

from leaderboard.schemas.common import ErrorDetail, ErrorResponse, MessageResponse
from leaderboard.schemas.leaderboard import (
    CacheStats,
    CreateUserRequest,
    CreateUserResponse,
    RankContext,
    RankedUser,
    ResyncResponse,
    UpdateScoreRequest,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    "CacheStats",
    "CreateUserRequest",
    "CreateUserResponse",
    "RankContext",
    "RankedUser",
    "ResyncResponse",
    "UpdateScoreRequest",
]

"""Schemas for the leaderboard endpoints (/api/users, /api/leaderboard)."""

from pydantic import BaseModel, Field, StrictInt


class RankedUser(BaseModel):
    """A user together with its 1-based leaderboard position."""

    position: int = Field(ge=1)
    user_id: int
    user_name: str
    image_url: str = ""
    total_score: int


class RankContext(BaseModel):
    """A user's position plus its nearest neighbors.

    `above` and `below` are both ordered by position ascending, so the last
    entry of `above` sits directly over `user` and the first entry of `below`
    directly under it.
    """

    user: RankedUser
    above: list[RankedUser] = Field(default_factory=list)
    below: list[RankedUser] = Field(default_factory=list)


class CreateUserRequest(BaseModel):
    """Request body for POST /api/users.

    Wrong JSON types (booleans, strings or floats as the score) are rejected
    here with 422. Value checks (blank names, URI syntax, negative scores)
    run in the service and answer 400, the same errors direct callers get.
    """

    user_name: str
    total_score: StrictInt
    image_url: str = ""


class CreateUserResponse(BaseModel):
    message: str
    user_id: int


class UpdateScoreRequest(BaseModel):
    """Request body for PUT /api/users/{user_id}/score."""

    total_score: StrictInt


class ResyncResponse(BaseModel):
    message: str
    loaded: int


class CacheStats(BaseModel):
    """Snapshot of the ranking cache."""

    backend: str
    cached_users: int
    cached_metadata: int
    cache_size_limit: int

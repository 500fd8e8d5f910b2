"""Errors raised by the leaderboard core.

Each class carries the stable error code used in the structured API error
format. Cache inconsistencies are not represented here: they are repaired by
resync and never surfaced to callers.
"""


class LeaderboardError(Exception):
    code = "LEADERBOARD_ERROR"


class ValidationError(LeaderboardError):
    """Caller input rejected before any store or cache access."""

    code = "VALIDATION_ERROR"


class NotFoundError(LeaderboardError):
    """The targeted user does not exist."""

    code = "NOT_FOUND"


class PersistenceError(LeaderboardError):
    """PostgreSQL was unreachable or rejected the statement; the transaction was rolled back."""

    code = "PERSISTENCE_ERROR"


class DuplicateUserError(PersistenceError):
    code = "DUPLICATE_USER"

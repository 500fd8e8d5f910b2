"""SQLAlchemy ORM models.

Models represent database tables:
- users: ranked participants with their total score
"""

from leaderboard.models.user import User

__all__ = ["User"]

"""User model.

Represents a ranked user. PostgreSQL is the source of truth for scores;
the ranking cache only holds a projection of the top users.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from leaderboard.stores.postgres import Base


class User(Base):
    """Leaderboard participant with its current total score."""

    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Display attributes (immutable after creation)
    user_name: Mapped[str] = mapped_column(Text, unique=True)
    image_url: Mapped[str] = mapped_column(Text, default="", server_default="")

    # Ranking
    total_score: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint("total_score >= 0", name="ck_users_total_score_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User {self.user_id} {self.user_name} ({self.total_score})>"


# Matches the canonical ranking order: score DESC, id ASC.
Index("ix_users_score_rank", User.total_score.desc(), User.user_id.asc())

"""Durable user store backed by PostgreSQL.

Every method is its own transaction (see `get_session`): a failing statement
rolls back and surfaces as `PersistenceError`, leaving the table unchanged.

Ranking queries use the same order as the cache, `total_score DESC, user_id ASC`,
and number rows with `row_number()`. Because `user_id` is unique the order is
total, so `row_number()` agrees with `RANK()` and with cache positions.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
import logging
from typing import Protocol

from sqlalchemy import Select, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leaderboard.models import User
from leaderboard.schemas import RankContext, RankedUser
from leaderboard.services.errors import DuplicateUserError, NotFoundError, PersistenceError
from leaderboard.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class UserRecord:
    user_id: int
    user_name: str
    image_url: str
    total_score: int


class UserStore(Protocol):
    """Operations the leaderboard coordinator needs from the durable store."""

    async def insert_user(self, user_name: str, score: int, image_url: str) -> int: ...

    async def update_score(self, user_id: int, score: int) -> UserRecord: ...

    async def query_top_n(self, n: int) -> list[RankedUser]: ...

    async def query_rank_and_context(self, user_id: int, window: int) -> RankContext | None: ...

    async def fetch_top_users(self, limit: int) -> list[UserRecord]: ...

    async def fetch_user_at(self, position: int) -> UserRecord | None: ...


# ============================================================
# Statement builders
# ============================================================


def ranking_order() -> tuple:
    """Canonical tie-break order shared by every ranking query."""
    return (User.total_score.desc(), User.user_id.asc())


def ranked_users_select() -> Select:
    """All users with their 1-based position under the canonical order."""
    position = func.row_number().over(order_by=ranking_order()).label("position")
    return select(
        User.user_id,
        User.user_name,
        User.image_url,
        User.total_score,
        position,
    )


def top_n_statement(n: int) -> Select:
    return ranked_users_select().order_by(*ranking_order()).limit(n)


def user_at_position_statement(position: int) -> Select:
    """The single user ranked at 1-based `position`."""
    return (
        select(User.user_id, User.user_name, User.image_url, User.total_score)
        .order_by(*ranking_order())
        .offset(position - 1)
        .limit(1)
    )


def rank_context_statement(user_id: int, window: int) -> Select:
    """One query returning the user plus `window` neighbors on each side.

    Rows come back ordered by position; the caller splits them around the
    target row.
    """
    ranked = ranked_users_select().cte("ranked")
    target_position = (
        select(ranked.c.position).where(ranked.c.user_id == user_id).scalar_subquery()
    )
    return (
        select(ranked)
        .where(
            ranked.c.position.between(
                target_position - window,
                target_position + window,
            )
        )
        .order_by(ranked.c.position)
    )


def _to_ranked_user(row) -> RankedUser:
    return RankedUser(
        position=int(row.position),
        user_id=row.user_id,
        user_name=row.user_name,
        image_url=row.image_url or "",
        total_score=row.total_score,
    )


def split_context(user_id: int, rows: list[RankedUser]) -> RankContext | None:
    """Split position-ordered rows into the target user and its neighbors."""
    for index, ranked in enumerate(rows):
        if ranked.user_id == user_id:
            return RankContext(user=ranked, above=rows[:index], below=rows[index + 1 :])
    return None


# ============================================================
# SQLAlchemy implementation
# ============================================================


class SqlUserStore:
    """`UserStore` over async SQLAlchemy sessions."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def insert_user(self, user_name: str, score: int, image_url: str) -> int:
        stmt = (
            insert(User)
            .values(user_name=user_name, total_score=score, image_url=image_url)
            .returning(User.user_id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one()
        except IntegrityError as e:
            raise DuplicateUserError(f"User name {user_name!r} is already taken") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Insert failed for user {user_name!r}: {e}")
            raise PersistenceError("Failed to create user") from e

    async def update_score(self, user_id: int, score: int) -> UserRecord:
        stmt = (
            update(User)
            .where(User.user_id == user_id)
            .values(total_score=score)
            .returning(User.user_id, User.user_name, User.image_url, User.total_score)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                row = result.first()
                if row is None:
                    # Raised inside the session block so the transaction rolls back.
                    raise NotFoundError(f"User with ID {user_id} not found")
                return UserRecord(
                    user_id=row.user_id,
                    user_name=row.user_name,
                    image_url=row.image_url or "",
                    total_score=row.total_score,
                )
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Score update failed for user {user_id}: {e}")
            raise PersistenceError("Failed to update score") from e

    async def query_top_n(self, n: int) -> list[RankedUser]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(top_n_statement(n))
                return [_to_ranked_user(row) for row in result]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to get top users from database: {e}") from e

    async def query_rank_and_context(self, user_id: int, window: int) -> RankContext | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(rank_context_statement(user_id, window))
                rows = [_to_ranked_user(row) for row in result]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to get user context from database: {e}") from e
        return split_context(user_id, rows)

    async def fetch_top_users(self, limit: int) -> list[UserRecord]:
        """Stream the top `limit` users in canonical order."""
        stmt = (
            select(User.user_id, User.user_name, User.image_url, User.total_score)
            .order_by(*ranking_order())
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                return [record async for record in _stream_records(session, stmt)]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to read users for resync: {e}") from e

    async def fetch_user_at(self, position: int) -> UserRecord | None:
        """The user at 1-based `position`, or None past the end of the table."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(user_at_position_statement(position))
                row = result.first()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to read user at position {position}: {e}") from e
        if row is None:
            return None
        return UserRecord(
            user_id=row.user_id,
            user_name=row.user_name,
            image_url=row.image_url or "",
            total_score=row.total_score,
        )


async def _stream_records(session: AsyncSession, stmt: Select) -> AsyncIterator[UserRecord]:
    result = await session.stream(stmt)
    async for row in result:
        yield UserRecord(
            user_id=row.user_id,
            user_name=row.user_name,
            image_url=row.image_url or "",
            total_score=row.total_score,
        )

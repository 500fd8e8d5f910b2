"""create_users_table

Revision ID: 1a6f3c2e9d40
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "1a6f3c2e9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), server_default="", nullable=False),
        sa.Column("total_score", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("user_name"),
        sa.CheckConstraint("total_score >= 0", name="ck_users_total_score_non_negative"),
    )

    # Canonical ranking order: score DESC, id ASC (top-N and window queries).
    op.create_index(
        "ix_users_score_rank",
        "users",
        [sa.text("total_score DESC"), sa.text("user_id ASC")],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_users_score_rank", table_name="users")
    op.drop_table("users")

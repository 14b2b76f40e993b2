"""Create games, users and deposits tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_create_games_and_users"
down_revision = None
branch_labels = None
depends_on = None

MOVE = postgresql.ENUM("ROCK", "PAPER", "SCISSORS", name="move", create_type=False)
ROOM_STATUS = postgresql.ENUM(
    "WAITING", "FINISHED", "CANCELLED", name="room_status", create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    MOVE.create(bind, checkfirst=True)
    ROOM_STATUS.create(bind, checkfirst=True)

    op.create_table(
        "games",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("host_address", sa.String(length=64), nullable=False),
        sa.Column("host_move", MOVE, nullable=False),
        sa.Column("bet_amount", sa.BigInteger(), nullable=False),
        sa.Column("status", ROOM_STATUS, nullable=False),
        sa.Column("joiner_address", sa.String(length=64), nullable=True),
        sa.Column("joiner_move", MOVE, nullable=True),
        sa.Column("winner", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_games_host_address", "games", ["host_address"])
    op.create_index("ix_games_status_created_at", "games", ["status", "created_at"])

    op.create_table(
        "users",
        sa.Column("address", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=12), nullable=True),
        sa.Column("last_cancel_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "deposits",
        sa.Column("proof", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("wallet_address", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column(
            "claimed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("deposits")
    op.drop_table("users")
    op.drop_index("ix_games_status_created_at", table_name="games")
    op.drop_index("ix_games_host_address", table_name="games")
    op.drop_table("games")
    bind = op.get_bind()
    ROOM_STATUS.drop(bind, checkfirst=True)
    MOVE.drop(bind, checkfirst=True)

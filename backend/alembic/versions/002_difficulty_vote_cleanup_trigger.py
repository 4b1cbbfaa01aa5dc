"""Difficulty vote cleanup trigger

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  AFTER DELETE trigger on activity_route. When a user's last tick
       (redpoint, flash, onsight or repeat) of a route is removed, their
       difficulty vote for that route goes with it.
How:   PostgreSQL gets the plpgsql function + trigger; SQLite gets the
       equivalent WHEN-guarded trigger. The SQL text is shared with the
       metadata DDL events in cragdb.models.activity.

Rollback: downgrade() drops the trigger (and the function on PostgreSQL).
"""

from typing import Sequence, Union

from alembic import op

from cragdb.models.activity import (
    POSTGRES_TRIGGER,
    POSTGRES_TRIGGER_FUNCTION,
    SQLITE_TRIGGER,
)

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_context().dialect.name == "postgresql":
        op.execute(POSTGRES_TRIGGER_FUNCTION)
        op.execute(POSTGRES_TRIGGER)
    else:
        op.execute(SQLITE_TRIGGER)


def downgrade() -> None:
    if op.get_context().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS delete_difficulty_vote ON activity_route")
        op.execute("DROP FUNCTION IF EXISTS delete_difficulty_vote()")
    else:
        op.execute("DROP TRIGGER IF EXISTS delete_difficulty_vote")

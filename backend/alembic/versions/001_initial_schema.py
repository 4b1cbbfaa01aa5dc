"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates every table of the climbing database: users, geography,
       crag → sector → route → pitch, ice falls, votes, activities and
       ascent logs, comments and clubs.
How:   Portable column types (UUID, VARCHAR-backed enums, TIMESTAMP WITH
       TIME ZONE); constraint names follow the naming convention declared
       on cragdb.database.Base so later migrations can reference them.

The difficulty-vote cleanup trigger is installed separately (002).

Rollback: downgrade() drops all tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ── Column helpers ────────────────────────────────────────────────────────

def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), nullable=False)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def _enum(name: str, default: Union[str, None] = None, nullable: bool = False) -> sa.Column:
    server_default = sa.text(f"'{default}'") if default is not None else None
    return sa.Column(name, sa.String(32), nullable=nullable, server_default=server_default)


def _fk(column: str, table: str, ondelete: Union[str, None] = None, nullable: bool = False) -> list:
    return [
        sa.Column(column, sa.Uuid(), nullable=nullable),
        sa.ForeignKeyConstraint(
            [column], [f"{table}.id"],
            name=f"fk_{{table}}_{column}_{table}",
            ondelete=ondelete,
        ),
    ]


def _table(name: str, *items) -> None:
    """op.create_table with FK constraint names resolved for `name`."""
    resolved = []
    for item in items:
        if isinstance(item, sa.ForeignKeyConstraint):
            item.name = item.name.replace("{table}", name)
        resolved.append(item)
    op.create_table(name, *resolved)


def _contributable() -> list:
    return [
        _enum("publish_status", default="draft"),
        *_fk("user_id", "user", ondelete="SET NULL", nullable=True),
    ]


def upgrade() -> None:
    # ── Users & geography ─────────────────────────────────────────────────
    _table(
        "user",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("has_unpublished_contributions", sa.Boolean(), nullable=False,
                  server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_user"),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )

    _table(
        "country",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(2), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("nr_crags", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id", name="pk_country"),
        sa.UniqueConstraint("code", name="uq_country_code"),
        sa.UniqueConstraint("slug", name="uq_country_slug"),
    )

    _table(
        "area",
        _id(),
        *_fk("country_id", "country", ondelete="CASCADE"),
        *_fk("area_id", "area", ondelete="CASCADE", nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_area"),
        sa.UniqueConstraint("slug", name="uq_area_slug"),
    )
    op.create_index("ix_area_country_id", "area", ["country_id"])

    _table(
        "peak",
        _id(),
        *_fk("country_id", "country", ondelete="CASCADE"),
        *_fk("area_id", "area", ondelete="SET NULL", nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_peak"),
        sa.UniqueConstraint("slug", name="uq_peak_slug"),
    )
    op.create_index("ix_peak_country_id", "peak", ["country_id"])

    # ── Crag → sector → route → pitch ─────────────────────────────────────
    _table(
        "crag",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        _enum("type", default="sport"),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lon", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_fk("country_id", "country"),
        *_fk("area_id", "area", ondelete="SET NULL", nullable=True),
        *_fk("peak_id", "peak", ondelete="SET NULL", nullable=True),
        *_contributable(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_crag"),
        sa.UniqueConstraint("slug", name="uq_crag_slug"),
    )
    for column in ("country_id", "area_id", "peak_id", "user_id"):
        op.create_index(f"ix_crag_{column}", "crag", [column])

    _table(
        "sector",
        _id(),
        *_fk("crag_id", "crag", ondelete="CASCADE"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("label", sa.String(50), nullable=False, server_default=sa.text("''")),
        sa.Column("position", sa.Integer(), nullable=False),
        *_contributable(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_sector"),
    )
    op.create_index("ix_sector_crag_position", "sector", ["crag_id", "position"])
    op.create_index("ix_sector_user_id", "sector", ["user_id"])

    _table(
        "route",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("route_type_id", sa.String(50), nullable=False,
                  server_default=sa.text("'sport'")),
        sa.Column("difficulty", sa.Float(), nullable=True),
        sa.Column("star_rating", sa.Float(), nullable=True),
        sa.Column("length", sa.Integer(), nullable=True),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_project", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("description", sa.Text(), nullable=True),
        *_fk("crag_id", "crag", ondelete="CASCADE"),
        *_fk("sector_id", "sector", ondelete="CASCADE"),
        *_contributable(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_route"),
        sa.UniqueConstraint("slug", "crag_id", name="uq_route_slug_crag_id"),
    )
    op.create_index("ix_route_crag_id", "route", ["crag_id"])
    op.create_index("ix_route_sector_position", "route", ["sector_id", "position"])
    op.create_index("ix_route_user_id", "route", ["user_id"])

    _table(
        "pitch",
        _id(),
        *_fk("route_id", "route", ondelete="CASCADE"),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.Float(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_pitch"),
    )
    op.create_index("ix_pitch_route_id", "pitch", ["route_id"])

    _table(
        "ice_fall",
        _id(),
        *_fk("country_id", "country", ondelete="CASCADE"),
        *_fk("area_id", "area", ondelete="SET NULL", nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_contributable(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_ice_fall"),
        sa.UniqueConstraint("slug", name="uq_ice_fall_slug"),
    )
    op.create_index("ix_ice_fall_country_id", "ice_fall", ["country_id"])
    op.create_index("ix_ice_fall_area_id", "ice_fall", ["area_id"])

    # ── Votes ─────────────────────────────────────────────────────────────
    _table(
        "difficulty_vote",
        _id(),
        *_fk("route_id", "route", ondelete="CASCADE"),
        *_fk("user_id", "user", ondelete="CASCADE", nullable=True),
        sa.Column("difficulty", sa.Float(), nullable=False),
        sa.Column("is_base", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_difficulty_vote"),
        sa.UniqueConstraint("user_id", "route_id", name="uq_difficulty_vote_user_route"),
    )
    op.create_index("ix_difficulty_vote_route_id", "difficulty_vote", ["route_id"])
    op.create_index("ix_difficulty_vote_user_id", "difficulty_vote", ["user_id"])

    _table(
        "star_rating_vote",
        _id(),
        *_fk("route_id", "route", ondelete="CASCADE"),
        *_fk("user_id", "user", ondelete="CASCADE"),
        sa.Column("stars", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_star_rating_vote"),
        sa.UniqueConstraint("user_id", "route_id", name="uq_star_rating_vote_user_route"),
    )
    op.create_index("ix_star_rating_vote_route_id", "star_rating_vote", ["route_id"])
    op.create_index("ix_star_rating_vote_user_id", "star_rating_vote", ["user_id"])

    # ── Activities & ascent logs ──────────────────────────────────────────
    _table(
        "activity",
        _id(),
        *_fk("user_id", "user", ondelete="CASCADE"),
        *_fk("crag_id", "crag", ondelete="SET NULL", nullable=True),
        _enum("type", default="crag"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_activity"),
    )
    op.create_index("ix_activity_user_id", "activity", ["user_id"])
    op.create_index("ix_activity_crag_id", "activity", ["crag_id"])

    _table(
        "activity_route",
        _id(),
        *_fk("activity_id", "activity", ondelete="CASCADE", nullable=True),
        *_fk("route_id", "route", ondelete="CASCADE"),
        *_fk("user_id", "user", ondelete="CASCADE"),
        _enum("ascent_type"),
        _enum("publish", default="public"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_activity_route"),
    )
    for column in ("activity_id", "route_id", "user_id"):
        op.create_index(f"ix_activity_route_{column}", "activity_route", [column])

    # ── Comments & clubs ──────────────────────────────────────────────────
    _table(
        "comment",
        _id(),
        *_fk("user_id", "user", ondelete="SET NULL", nullable=True),
        _enum("type", default="comment"),
        sa.Column("content", sa.Text(), nullable=False),
        *_fk("crag_id", "crag", ondelete="CASCADE", nullable=True),
        *_fk("route_id", "route", ondelete="CASCADE", nullable=True),
        *_fk("ice_fall_id", "ice_fall", ondelete="CASCADE", nullable=True),
        sa.Column("exposed_until", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_comment"),
    )
    for column in ("user_id", "crag_id", "route_id", "ice_fall_id"):
        op.create_index(f"ix_comment_{column}", "comment", [column])

    _table(
        "club",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_club"),
        sa.UniqueConstraint("slug", name="uq_club_slug"),
    )

    _table(
        "club_member",
        _id(),
        *_fk("club_id", "club", ondelete="CASCADE"),
        *_fk("user_id", "user", ondelete="CASCADE"),
        sa.Column("admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_club_member"),
        sa.UniqueConstraint("club_id", "user_id", name="uq_club_member_club_user"),
    )
    op.create_index("ix_club_member_club_id", "club_member", ["club_id"])
    op.create_index("ix_club_member_user_id", "club_member", ["user_id"])


def downgrade() -> None:
    """Drop every table, children first. Destructive: all data is lost."""
    for table in (
        "club_member",
        "club",
        "comment",
        "activity_route",
        "activity",
        "star_rating_vote",
        "difficulty_vote",
        "ice_fall",
        "pitch",
        "route",
        "sector",
        "crag",
        "peak",
        "area",
        "country",
        "user",
    ):
        op.drop_table(table)

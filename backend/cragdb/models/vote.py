"""
CragDB Backend — Route Votes
==============================

What:  Per-user opinions on a route: difficulty (grade) and star rating (beauty).

A difficulty vote with `is_base=True` is the grade proposed when the route
was created. It has no user and is never removed by the vote cleanup trigger,
which only matches votes of the user whose ascent log was deleted.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class DifficultyVote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "difficulty_vote"

    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=True, index=True
    )
    difficulty: Mapped[float] = mapped_column(Float, nullable=False)
    is_base: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "route_id", name="uq_difficulty_vote_user_route"),
    )


class StarRatingVote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "star_rating_vote"

    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stars: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "route_id", name="uq_star_rating_vote_user_route"),
    )

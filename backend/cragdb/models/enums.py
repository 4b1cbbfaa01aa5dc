"""
CragDB Backend — Domain Enumerations
======================================

What:  Enumerated values stored on crags, sectors, routes, activities and comments.
How:   `str` enums, persisted by value through `enum_column()` as VARCHAR so the
       same schema works on PostgreSQL and SQLite and raw SQL (the vote cleanup
       trigger) can compare against the literal values.
"""

import enum
from typing import FrozenSet, Type

from sqlalchemy import Enum as SAEnum


class PublishStatus(str, enum.Enum):
    """
    Lifecycle / visibility of a contributable entity.

    Ordered by visibility: draft < in_review < published.
    """

    DRAFT = "draft"
    IN_REVIEW = "in_review"
    PUBLISHED = "published"

    @property
    def rank(self) -> int:
        return _PUBLISH_STATUS_RANK[self]

    @classmethod
    def at_or_above(cls, minimum: "PublishStatus") -> FrozenSet["PublishStatus"]:
        """All statuses whose visibility rank is >= `minimum`."""
        return frozenset(s for s in cls if s.rank >= minimum.rank)


_PUBLISH_STATUS_RANK = {
    PublishStatus.DRAFT: 0,
    PublishStatus.IN_REVIEW: 1,
    PublishStatus.PUBLISHED: 2,
}

# Statuses that make an entity count as an unpublished contribution of its owner
UNPUBLISHED_STATUSES: FrozenSet[PublishStatus] = frozenset(
    {PublishStatus.DRAFT, PublishStatus.IN_REVIEW}
)


class CragType(str, enum.Enum):
    SPORT = "sport"
    ALPINE = "alpine"


class ActivityType(str, enum.Enum):
    CRAG = "crag"
    CLIMBING_GYM = "climbing_gym"
    TRAINING_GYM = "training_gym"
    PEAK = "peak"
    ICE_FALL = "ice_fall"
    OTHER = "other"


class AscentType(str, enum.Enum):
    ONSIGHT = "onsight"
    FLASH = "flash"
    REDPOINT = "redpoint"
    REPEAT = "repeat"
    ALLFREE = "allfree"
    AID = "aid"
    ATTEMPT = "attempt"
    T_ONSIGHT = "t_onsight"
    T_FLASH = "t_flash"
    T_REDPOINT = "t_redpoint"
    T_REPEAT = "t_repeat"
    T_ALLFREE = "t_allfree"
    T_AID = "t_aid"
    T_ATTEMPT = "t_attempt"


# Ascent types that count as a tick. Keep in sync with the
# delete_difficulty_vote trigger (models/activity.py, alembic 002).
TICK_ASCENT_TYPES: FrozenSet[AscentType] = frozenset(
    {AscentType.REDPOINT, AscentType.FLASH, AscentType.ONSIGHT, AscentType.REPEAT}
)


class PublishType(str, enum.Enum):
    """Who may see a single ascent log entry."""

    PUBLIC = "public"
    CLUB = "club"
    LOG = "log"
    PRIVATE = "private"


class CommentType(str, enum.Enum):
    COMMENT = "comment"
    CONDITION = "condition"
    WARNING = "warning"
    DESCRIPTION = "description"


def enum_column(enum_cls: Type[enum.Enum]) -> SAEnum:
    """SQLAlchemy Enum type storing member values (not names) in a VARCHAR."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )

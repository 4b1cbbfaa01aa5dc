"""
ORM models. Importing this package registers every table on `Base.metadata`
(Alembic autogenerate and the test schema rely on that).
"""

from cragdb.models.activity import Activity, ActivityRoute
from cragdb.models.club import Club, ClubMember
from cragdb.models.comment import Comment
from cragdb.models.crag import Crag, Pitch, Route, Sector
from cragdb.models.enums import (
    ActivityType,
    AscentType,
    CommentType,
    CragType,
    PublishStatus,
    PublishType,
)
from cragdb.models.geography import Area, Country, Peak
from cragdb.models.ice_fall import IceFall
from cragdb.models.user import User
from cragdb.models.vote import DifficultyVote, StarRatingVote

__all__ = [
    "Activity",
    "ActivityRoute",
    "ActivityType",
    "Area",
    "AscentType",
    "Club",
    "ClubMember",
    "Comment",
    "CommentType",
    "Country",
    "Crag",
    "CragType",
    "DifficultyVote",
    "IceFall",
    "Peak",
    "Pitch",
    "PublishStatus",
    "PublishType",
    "Route",
    "Sector",
    "StarRatingVote",
    "User",
]

"""Comments, conditions reports and warnings attached to a crag, route or ice fall."""

import datetime
import uuid
from typing import Optional

from sqlalchemy import Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.enums import CommentType, enum_column
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Comment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "comment"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type: Mapped[CommentType] = mapped_column(
        enum_column(CommentType), nullable=False, default=CommentType.COMMENT
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Exactly one target is set; enforced by the comment service
    crag_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("crag.id", ondelete="CASCADE"), nullable=True, index=True
    )
    route_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("route.id", ondelete="CASCADE"), nullable=True, index=True
    )
    ice_fall_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("ice_fall.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # Warnings stay on the front page until this date (inclusive)
    exposed_until: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)

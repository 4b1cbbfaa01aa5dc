"""Ice falls: contributable like crags, but without sectors or routes."""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.enums import PublishStatus, enum_column
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class IceFall(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "ice_fall"

    country_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("country.id", ondelete="CASCADE"), nullable=False, index=True
    )
    area_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("area.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    publish_status: Mapped[PublishStatus] = mapped_column(
        enum_column(PublishStatus), nullable=False, default=PublishStatus.DRAFT
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

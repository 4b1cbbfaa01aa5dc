"""
CragDB Backend — Geography Models
===================================

What:  Reference data crags hang off: countries, areas (nestable) and peaks.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.mixins import UUIDPrimaryKeyMixin


class Country(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "country"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(2), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # Maintained by the crag service whenever a crag is created or deleted
    nr_crags: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Country(code='{self.code}', name='{self.name}')>"


class Area(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "area"

    country_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("country.id", ondelete="CASCADE"), nullable=False, index=True
    )
    area_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("area.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Peak(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "peak"

    country_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("country.id", ondelete="CASCADE"), nullable=False, index=True
    )
    area_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("area.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

"""
CragDB Backend — Crag, Sector & Route Models
==============================================

What:  The contributable hierarchy: crag → sector → route (→ pitch).
How:   Parent links are explicit foreign-key columns. There are no ORM
       relationships; every cross-entity fetch is an explicit query in a
       service, so nothing lazy-loads behind an AsyncSession.

Ordering:
    sector.position orders sectors within a crag, route.position orders
    routes within a sector. Positions are kept collision-free by the
    position sequencer (services/positions.py), not by a DB constraint:
    a shift rewrites rows one by one and would trip a unique index midway.

Slugs:
    crag.slug is globally unique, route.slug is unique within its crag.
"""

import uuid
from typing import Optional

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from cragdb.database import Base
from cragdb.models.enums import CragType, PublishStatus, enum_column
from cragdb.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Crag(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "crag"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[CragType] = mapped_column(
        enum_column(CragType), nullable=False, default=CragType.SPORT
    )
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    country_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("country.id"), nullable=False, index=True
    )
    area_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("area.id", ondelete="SET NULL"), nullable=True, index=True
    )
    peak_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("peak.id", ondelete="SET NULL"), nullable=True, index=True
    )

    publish_status: Mapped[PublishStatus] = mapped_column(
        enum_column(PublishStatus), nullable=False, default=PublishStatus.DRAFT
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Crag(slug='{self.slug}', status='{self.publish_status.value}')>"


class Sector(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "sector"

    crag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("crag.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    publish_status: Mapped[PublishStatus] = mapped_column(
        enum_column(PublishStatus), nullable=False, default=PublishStatus.DRAFT
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )

    __table_args__ = (Index("ix_sector_crag_position", "crag_id", "position"),)

    def __repr__(self) -> str:
        return f"<Sector(name='{self.name}', position={self.position})>"


class Route(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "route"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    route_type_id: Mapped[str] = mapped_column(String(50), nullable=False, default="sport")
    difficulty: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    star_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_project: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # crag_id mirrors sector.crag_id; it scopes slug uniqueness
    crag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("crag.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sector_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sector.id", ondelete="CASCADE"), nullable=False
    )

    publish_status: Mapped[PublishStatus] = mapped_column(
        enum_column(PublishStatus), nullable=False, default=PublishStatus.DRAFT
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )

    __table_args__ = (
        UniqueConstraint("slug", "crag_id", name="uq_route_slug_crag_id"),
        Index("ix_route_sector_position", "sector_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<Route(slug='{self.slug}', position={self.position})>"


class Pitch(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "pitch"

    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

"""
CragDB Backend — Peaks & Ice Falls
====================================

What:  Read-side helpers for the alpine part of the geography: peaks and
       ice falls of a country, optionally narrowed to an area.
Who:   Called by GraphQL resolvers (Country/Peak fields).

Ice falls are contributable, so the usual visibility clause applies to them;
peaks are reference data and always visible.
"""

import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import NotFoundError
from cragdb.models.crag import Crag
from cragdb.models.geography import Area, Peak
from cragdb.models.ice_fall import IceFall
from cragdb.schemas.viewer import Viewer
from cragdb.services.publish_status import visibility_clause
from cragdb.services.queries import name_order


def _in_area(model, area_slug: Optional[str]):
    return model.area_id == select(Area.id).where(Area.slug == area_slug).scalar_subquery()


class PeakService:
    async def get_by_slug(self, db: AsyncSession, slug: str) -> Peak:
        peak = await db.scalar(select(Peak).where(Peak.slug == slug))
        if peak is None:
            raise NotFoundError(resource="peak", context={"slug": slug})
        return peak

    async def number_of_crags(
        self, db: AsyncSession, peak_id: uuid.UUID, viewer: Optional[Viewer]
    ) -> int:
        stmt = select(func.count(Crag.id)).where(
            Crag.peak_id == peak_id, visibility_clause(Crag, viewer)
        )
        if viewer is None:
            stmt = stmt.where(Crag.is_hidden.is_(False))
        return int(await db.scalar(stmt) or 0)

    async def peaks_of_country(
        self, db: AsyncSession, country_id: uuid.UUID, area_slug: Optional[str] = None
    ) -> List[Peak]:
        stmt = select(Peak).where(Peak.country_id == country_id).order_by(name_order(Peak.name))
        if area_slug is not None:
            stmt = stmt.where(_in_area(Peak, area_slug))
        return list((await db.scalars(stmt)).all())

    async def number_of_peaks(self, db: AsyncSession, country_id: uuid.UUID) -> int:
        return int(
            await db.scalar(select(func.count(Peak.id)).where(Peak.country_id == country_id))
            or 0
        )


class IceFallService:
    async def ice_falls_of_country(
        self,
        db: AsyncSession,
        country_id: uuid.UUID,
        viewer: Optional[Viewer],
        area_slug: Optional[str] = None,
    ) -> List[IceFall]:
        stmt = (
            select(IceFall)
            .where(IceFall.country_id == country_id, visibility_clause(IceFall, viewer))
            .order_by(name_order(IceFall.name))
        )
        if area_slug is not None:
            stmt = stmt.where(_in_area(IceFall, area_slug))
        return list((await db.scalars(stmt)).all())

    async def number_of_ice_falls(
        self, db: AsyncSession, country_id: uuid.UUID, viewer: Optional[Viewer]
    ) -> int:
        stmt = select(func.count(IceFall.id)).where(
            IceFall.country_id == country_id, visibility_clause(IceFall, viewer)
        )
        return int(await db.scalar(stmt) or 0)


# Singleton instances
peak_service = PeakService()
ice_fall_service = IceFallService()

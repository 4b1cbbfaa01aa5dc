"""
CragDB Backend — Crag Service
===============================

What:  Reads and writes of crags, including the crag-level aggregates.
How:   Reads go through the query builder (services/queries.py); aggregate
       reads go through the query cache. Writes run inside `atomic()`.
Who:   Called by GraphQL resolvers (graphql/schema.py).

Write Flow (create / update):
    ┌───────────┐   ┌──────────┐   ┌───────────────┐   ┌────────────────┐
    │ field-by- │──▶│  slug    │──▶│ cascade status│──▶│ owner's contri-│──▶ COMMIT
    │ field set │   │ (unique) │   │ (opt-in)      │   │ bution flag    │
    └───────────┘   └──────────┘   └───────────────┘   └────────────────┘

Country bookkeeping:
    country.nr_crags is incremented/decremented in the same transaction as
    the crag insert/delete/move.
"""

import datetime
import logging
import uuid
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import NotFoundError
from cragdb.models.crag import Crag
from cragdb.models.geography import Area, Country, Peak
from cragdb.schemas.filters import ById, Filters
from cragdb.schemas.inputs import CreateCragInput, FindCragsInput, UpdateCragInput
from cragdb.schemas.viewer import Viewer
from cragdb.services import queries
from cragdb.services.publish_status import cascade_publish_status, update_contributions_flag
from cragdb.services.query_cache import fingerprint, query_cache
from cragdb.services.slug import unique_slug
from cragdb.services.transaction import CONTRIBUTABLE_TABLES, atomic, retry_on_conflict

logger = logging.getLogger(__name__)


class CragWithRouteCount(NamedTuple):
    crag: Crag
    route_count: int


class PopularCrag(NamedTuple):
    crag: Crag
    nr_visits: int


class CragService:
    """
    Business logic for crags.

    Responsibilities:
        - find/find_one: structured filters + visibility, with route counts
        - create/update/delete: transactional writes with cascade and flag
        - number_of_routes / popular_crags / activity_by_month: cached aggregates
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find(
        self, db: AsyncSession, params: FindCragsInput, viewer: Optional[Viewer]
    ) -> List[CragWithRouteCount]:
        return await self._find(db, params.to_filters(), viewer)

    async def find_one(
        self, db: AsyncSession, params: FindCragsInput, viewer: Optional[Viewer]
    ) -> CragWithRouteCount:
        rows = await self._find(db, params.to_filters(), viewer)
        if not rows:
            raise NotFoundError(resource="crag")
        return rows[0]

    async def _find(
        self, db: AsyncSession, filters: Filters, viewer: Optional[Viewer]
    ) -> List[CragWithRouteCount]:
        result = await db.execute(queries.build_crags_query(filters, viewer))
        return [CragWithRouteCount(crag, route_count) for crag, route_count in result.all()]

    async def find_by_ids(self, db: AsyncSession, ids: Sequence[uuid.UUID]) -> List[Crag]:
        """Crags by id, in the order of `ids` (unknown ids are skipped)."""
        if not ids:
            return []
        crags = (await db.scalars(select(Crag).where(Crag.id.in_(list(ids))))).all()
        by_id = {crag.id: crag for crag in crags}
        return [by_id[i] for i in ids if i in by_id]

    async def find_one_by_id(self, db: AsyncSession, crag_id: uuid.UUID) -> Crag:
        crag = await db.get(Crag, crag_id)
        if crag is None:
            raise NotFoundError(resource="crag", resource_id=str(crag_id))
        return crag

    # ── Aggregates (cached) ───────────────────────────────────────────────

    async def number_of_routes(
        self, db: AsyncSession, crag_id: uuid.UUID, viewer: Optional[Viewer]
    ) -> int:
        async def load() -> int:
            return int(await db.scalar(queries.build_number_of_routes_query(crag_id, viewer)) or 0)

        key = fingerprint("number_of_routes", (ById(crag_id),), viewer)
        return await query_cache.cached(key, ("route",), load)

    async def popular_crags(
        self,
        db: AsyncSession,
        date_from: Optional[datetime.date] = None,
        top: Optional[int] = None,
        show_hidden: bool = False,
    ) -> List[PopularCrag]:
        """
        Most visited published crags (visits = activities logged at the crag).

        Only the raw (crag_id, nr_visits) pairs are cached; crags are loaded
        fresh on every call.
        """

        async def load():
            result = await db.execute(
                queries.build_popular_crags_query(date_from, top, show_hidden)
            )
            return [[str(crag_id), int(nr_visits)] for crag_id, nr_visits in result.all()]

        key = fingerprint(
            "popular_crags", date_from=date_from, top=top, show_hidden=show_hidden
        )
        raw = await query_cache.cached(key, ("crag", "activity"), load)

        crags = await self.find_by_ids(db, [uuid.UUID(crag_id) for crag_id, _ in raw])
        visits = {uuid.UUID(crag_id): nr for crag_id, nr in raw}
        return [PopularCrag(crag, visits[crag.id]) for crag in crags]

    async def activity_by_month(self, db: AsyncSession, crag_id: uuid.UUID) -> List[int]:
        """Ascent logs on the crag's routes per calendar month: 12 buckets, Jan..Dec."""

        async def load() -> List[int]:
            buckets = [0] * 12
            result = await db.execute(queries.build_activity_by_month_query(crag_id))
            for month, visits in result.all():
                buckets[int(month) - 1] = int(visits)
            return buckets

        key = fingerprint("activity_by_month", (ById(crag_id),))
        return await query_cache.cached(key, ("activity_route", "route"), load)

    # ── Writes ────────────────────────────────────────────────────────────

    @retry_on_conflict
    async def create(
        self, db: AsyncSession, data: CreateCragInput, viewer: Optional[Viewer]
    ) -> Crag:
        owner_id = viewer.user_id if viewer else None

        async with atomic(db, touches=CONTRIBUTABLE_TABLES):
            country = await self._country(db, data.country_id)
            await self._check_references(db, data.area_id, data.peak_id)

            crag = Crag(
                name=data.name,
                slug=await unique_slug(db, Crag, data.name),
                type=data.type,
                is_hidden=data.is_hidden,
                lat=data.lat,
                lon=data.lon,
                description=data.description,
                country_id=country.id,
                area_id=data.area_id,
                peak_id=data.peak_id,
                publish_status=data.publish_status,
                user_id=owner_id,
            )
            db.add(crag)
            country.nr_crags += 1
            await db.flush()

            await update_contributions_flag(db, owner_id, crag.publish_status)

        logger.info("Crag created: %s (%s)", crag.slug, crag.id)
        return crag

    async def update(self, db: AsyncSession, data: UpdateCragInput) -> Crag:
        async with atomic(db, touches=CONTRIBUTABLE_TABLES):
            crag = await self.find_one_by_id(db, data.id)
            previous_status = crag.publish_status
            changes = data.changes()

            if "country_id" in changes and changes["country_id"] != crag.country_id:
                old_country = await self._country(db, crag.country_id)
                new_country = await self._country(db, changes["country_id"])
                old_country.nr_crags -= 1
                new_country.nr_crags += 1
            await self._check_references(db, changes.get("area_id"), changes.get("peak_id"))

            for field, value in changes.items():
                setattr(crag, field, value)
            if "name" in changes:
                crag.slug = await unique_slug(db, Crag, crag.name, exclude_id=crag.id)
            await db.flush()

            if data.cascade_publish_status:
                await cascade_publish_status(db, crag, previous_status)

            await update_contributions_flag(db, crag.user_id, crag.publish_status)

        logger.info("Crag updated: %s (%s)", crag.slug, ", ".join(sorted(changes)))
        return crag

    async def delete(self, db: AsyncSession, crag_id: uuid.UUID) -> bool:
        """Delete the crag; sectors, routes and their votes/logs go with it (ON DELETE CASCADE)."""
        async with atomic(db, touches=CONTRIBUTABLE_TABLES + ("activity", "activity_route")):
            crag = await self.find_one_by_id(db, crag_id)
            owner_id = crag.user_id
            country = await db.get(Country, crag.country_id)
            if country is not None:
                country.nr_crags = max(country.nr_crags - 1, 0)

            await db.delete(crag)
            await db.flush()

            await update_contributions_flag(db, owner_id, None)

        logger.info("Crag deleted: %s", crag_id)
        return True

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _country(self, db: AsyncSession, country_id: uuid.UUID) -> Country:
        country = await db.get(Country, country_id)
        if country is None:
            raise NotFoundError(resource="country", resource_id=str(country_id))
        return country

    async def _check_references(
        self,
        db: AsyncSession,
        area_id: Optional[uuid.UUID],
        peak_id: Optional[uuid.UUID],
    ) -> None:
        if area_id is not None and await db.get(Area, area_id) is None:
            raise NotFoundError(resource="area", resource_id=str(area_id))
        if peak_id is not None and await db.get(Peak, peak_id) is None:
            raise NotFoundError(resource="peak", resource_id=str(peak_id))


# Singleton instance
crag_service = CragService()

"""
CragDB Backend — Sector Service
=================================

What:  Reads and writes of sectors, and moving a sector to another crag.
How:   Every write runs inside `atomic()`: the sector save, the position
       shift of its siblings, the optional status cascade to its routes and
       the owner's contribution flag commit together or not at all.
Who:   Called by GraphQL resolvers (graphql/schema.py).

Moving a sector (move_to_crag):
    1. sector.crag_id := target, appended after the target's last sector
    2. every route: slug regenerated within the target crag, crag_id := target
    3. ascent logs of those routes leave their activity in the old crag and
       join the user's activity in the target crag on the same day
       (created when missing); activities left empty are deleted
"""

import logging
import uuid
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import NotFoundError
from cragdb.models.activity import Activity, ActivityRoute
from cragdb.models.crag import Crag, Route, Sector
from cragdb.schemas.inputs import CreateSectorInput, FindSectorsInput, UpdateSectorInput
from cragdb.schemas.viewer import Viewer
from cragdb.services import queries
from cragdb.services.positions import make_room, next_position
from cragdb.services.publish_status import cascade_publish_status, update_contributions_flag
from cragdb.services.slug import unique_slug
from cragdb.services.transaction import ACTIVITY_TABLES, CONTRIBUTABLE_TABLES, atomic

logger = logging.getLogger(__name__)


class SectorService:
    """Business logic for sectors."""

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find(
        self, db: AsyncSession, params: FindSectorsInput, viewer: Optional[Viewer]
    ) -> List[Sector]:
        result = await db.scalars(queries.build_sectors_query(params.to_filters(), viewer))
        return list(result.all())

    async def find_one(
        self, db: AsyncSession, params: FindSectorsInput, viewer: Optional[Viewer]
    ) -> Sector:
        sectors = await self.find(db, params, viewer)
        if not sectors:
            raise NotFoundError(resource="sector")
        return sectors[0]

    async def find_one_by_id(self, db: AsyncSession, sector_id: uuid.UUID) -> Sector:
        sector = await db.get(Sector, sector_id)
        if sector is None:
            raise NotFoundError(resource="sector", resource_id=str(sector_id))
        return sector

    async def boulders_only(self, db: AsyncSession, sector_id: uuid.UUID) -> bool:
        """True when the sector has no route of a type other than boulder."""
        others = await db.scalar(
            select(
                exists().where(Route.sector_id == sector_id, Route.route_type_id != "boulder")
            )
        )
        return not others

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(
        self, db: AsyncSession, data: CreateSectorInput, viewer: Optional[Viewer]
    ) -> Sector:
        owner_id = viewer.user_id if viewer else None

        async with atomic(db, touches=CONTRIBUTABLE_TABLES):
            if await db.get(Crag, data.crag_id) is None:
                raise NotFoundError(resource="crag", resource_id=str(data.crag_id))

            position = data.position
            if position is None:
                position = await next_position(db, Sector, data.crag_id)

            sector = Sector(
                crag_id=data.crag_id,
                name=data.name,
                label=data.label,
                position=position,
                publish_status=data.publish_status,
                user_id=owner_id,
            )
            db.add(sector)
            await make_room(db, sector)

            await update_contributions_flag(db, owner_id, sector.publish_status)

        logger.info("Sector created: %s at position %d (%s)", sector.name, position, sector.id)
        return sector

    async def update(self, db: AsyncSession, data: UpdateSectorInput) -> Sector:
        async with atomic(db, touches=CONTRIBUTABLE_TABLES):
            sector = await self.find_one_by_id(db, data.id)
            previous_status = sector.publish_status
            changes = data.changes()

            for field, value in changes.items():
                setattr(sector, field, value)
            if "position" in changes:
                await make_room(db, sector)
            else:
                await db.flush()

            if data.cascade_publish_status:
                await cascade_publish_status(db, sector, previous_status)

            await update_contributions_flag(db, sector.user_id, sector.publish_status)

        logger.info("Sector updated: %s (%s)", sector.id, ", ".join(sorted(changes)))
        return sector

    async def delete(self, db: AsyncSession, sector_id: uuid.UUID) -> bool:
        async with atomic(db, touches=CONTRIBUTABLE_TABLES + ("activity_route",)):
            sector = await self.find_one_by_id(db, sector_id)
            owner_id = sector.user_id

            await db.delete(sector)
            await db.flush()

            await update_contributions_flag(db, owner_id, None)

        logger.info("Sector deleted: %s", sector_id)
        return True

    async def move_to_crag(
        self, db: AsyncSession, sector_id: uuid.UUID, crag_id: uuid.UUID
    ) -> Sector:
        """
        Move a sector with all its routes and their ascent logs to another crag.

        Raises:
            NotFoundError: unknown sector or target crag.
        """
        async with atomic(db, touches=CONTRIBUTABLE_TABLES + ACTIVITY_TABLES):
            sector = await self.find_one_by_id(db, sector_id)
            target = await db.get(Crag, crag_id)
            if target is None:
                raise NotFoundError(resource="crag", resource_id=str(crag_id))

            source_crag_id = sector.crag_id
            if source_crag_id == target.id:
                return sector

            sector.position = await next_position(db, Sector, target.id)
            sector.crag_id = target.id
            await db.flush()

            routes = (
                await db.scalars(
                    select(Route).where(Route.sector_id == sector.id).order_by(Route.position)
                )
            ).all()
            for route in routes:
                # Slug first: the slug lookup must not see the route in the target crag yet
                route.slug = await unique_slug(
                    db, Route, route.name, scope=(Route.crag_id == target.id,)
                )
                route.crag_id = target.id
                await db.flush()

            moved = await self._move_ascent_logs(
                db, [route.id for route in routes], source_crag_id, target
            )

        logger.info(
            "Sector %s moved to crag %s with %d route(s) and %d ascent log(s)",
            sector.id,
            target.slug,
            len(routes),
            moved,
        )
        return sector

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _move_ascent_logs(
        self,
        db: AsyncSession,
        route_ids: List[uuid.UUID],
        source_crag_id: uuid.UUID,
        target: Crag,
    ) -> int:
        """Re-home ascent logs of `route_ids` from old-crag activities to target-crag ones."""
        if not route_ids:
            return 0

        rows = (
            await db.execute(
                select(ActivityRoute, Activity)
                .join(Activity, Activity.id == ActivityRoute.activity_id)
                .where(
                    ActivityRoute.route_id.in_(route_ids),
                    Activity.crag_id == source_crag_id,
                )
                .order_by(Activity.date, ActivityRoute.created_at)
            )
        ).all()

        # (user, date, type) → activity in the target crag
        target_activities: Dict[Tuple[uuid.UUID, object, object], Activity] = {}
        left_behind: Set[uuid.UUID] = set()

        for ascent, old_activity in rows:
            key = (old_activity.user_id, old_activity.date, old_activity.type)
            new_activity = target_activities.get(key)
            if new_activity is None:
                new_activity = await db.scalar(
                    select(Activity).where(
                        Activity.user_id == old_activity.user_id,
                        Activity.crag_id == target.id,
                        Activity.date == old_activity.date,
                        Activity.type == old_activity.type,
                    )
                )
                if new_activity is None:
                    new_activity = Activity(
                        user_id=old_activity.user_id,
                        crag_id=target.id,
                        type=old_activity.type,
                        name=target.name,
                        date=old_activity.date,
                    )
                    db.add(new_activity)
                    await db.flush()
                target_activities[key] = new_activity

            ascent.activity_id = new_activity.id
            left_behind.add(old_activity.id)
            await db.flush()

        for activity_id in left_behind:
            remaining = await db.scalar(
                select(func.count(ActivityRoute.id)).where(
                    ActivityRoute.activity_id == activity_id
                )
            )
            if not remaining:
                await db.delete(await db.get(Activity, activity_id))
        await db.flush()

        logger.debug("Moved %d ascent log(s) into crag %s", len(rows), target.id)
        return len(rows)


# Singleton instance
sector_service = SectorService()

"""
CragDB Backend — Route Service
================================

What:  Reads and writes of routes, their pitches and votes, and the ascent
       counters shown next to every route.
How:   Writes run inside `atomic()`. A route's crag is always taken from its
       sector, and its slug is unique within that crag.
Who:   Called by GraphQL resolvers (graphql/schema.py).

Base difficulty:
    The grade an author proposes on create is stored as a DifficultyVote
    with is_base=True and no user, in the same transaction as the route.
    Projects have no grade, so they get no base vote.

Counters (count_ticks / count_tries / count_distinct_climbers):
    Batched over many route ids and cached per id set; routes without
    ascent logs report 0.
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import NotFoundError
from cragdb.models.crag import Pitch, Route, Sector
from cragdb.models.vote import DifficultyVote
from cragdb.schemas.filters import ByIds
from cragdb.schemas.inputs import CreateRouteInput, FindRoutesInput, UpdateRouteInput
from cragdb.schemas.viewer import Viewer
from cragdb.services import queries
from cragdb.services.positions import make_room, next_position
from cragdb.services.publish_status import update_contributions_flag
from cragdb.services.query_cache import fingerprint, query_cache
from cragdb.services.slug import unique_slug
from cragdb.services.transaction import CONTRIBUTABLE_TABLES, atomic, retry_on_conflict

logger = logging.getLogger(__name__)

_COUNTER_TABLES = ("route", "activity_route")


class RouteService:
    """
    Business logic for routes.

    Responsibilities:
        - find/find_one/find_one_by_slug: structured filters + visibility
        - create/update/delete: transactional writes with position shift
        - count_ticks/count_tries/count_distinct_climbers: cached counters
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find(
        self, db: AsyncSession, params: FindRoutesInput, viewer: Optional[Viewer]
    ) -> List[Route]:
        result = await db.scalars(queries.build_routes_query(params.to_filters(), viewer))
        return list(result.all())

    async def find_one(
        self, db: AsyncSession, params: FindRoutesInput, viewer: Optional[Viewer]
    ) -> Route:
        routes = await self.find(db, params, viewer)
        if not routes:
            raise NotFoundError(resource="route")
        return routes[0]

    async def find_by_ids(self, db: AsyncSession, ids: Sequence[uuid.UUID]) -> List[Route]:
        if not ids:
            return []
        return list((await db.scalars(select(Route).where(Route.id.in_(list(ids))))).all())

    async def find_one_by_id(self, db: AsyncSession, route_id: uuid.UUID) -> Route:
        route = await db.get(Route, route_id)
        if route is None:
            raise NotFoundError(resource="route", resource_id=str(route_id))
        return route

    async def find_one_by_slug(
        self, db: AsyncSession, crag_slug: str, route_slug: str, viewer: Optional[Viewer]
    ) -> Route:
        route = await db.scalar(queries.build_route_by_slug_query(crag_slug, route_slug, viewer))
        if route is None:
            raise NotFoundError(
                resource="route",
                context={"crag_slug": crag_slug, "route_slug": route_slug},
            )
        return route

    async def pitches(self, db: AsyncSession, route_id: uuid.UUID) -> List[Pitch]:
        result = await db.scalars(
            select(Pitch).where(Pitch.route_id == route_id).order_by(Pitch.number)
        )
        return list(result.all())

    async def difficulty_votes(self, db: AsyncSession, route_id: uuid.UUID) -> List[DifficultyVote]:
        """Votes of a route, the base vote first."""
        result = await db.scalars(
            select(DifficultyVote)
            .where(DifficultyVote.route_id == route_id)
            .order_by(DifficultyVote.is_base.desc(), DifficultyVote.created_at)
        )
        return list(result.all())

    # ── Counters (cached) ─────────────────────────────────────────────────

    async def count_ticks(
        self, db: AsyncSession, route_ids: Sequence[uuid.UUID]
    ) -> Dict[uuid.UUID, int]:
        return await self._count("count_ticks", queries.build_count_ticks_query, db, route_ids)

    async def count_tries(
        self, db: AsyncSession, route_ids: Sequence[uuid.UUID]
    ) -> Dict[uuid.UUID, int]:
        return await self._count("count_tries", queries.build_count_tries_query, db, route_ids)

    async def count_distinct_climbers(
        self, db: AsyncSession, route_ids: Sequence[uuid.UUID]
    ) -> Dict[uuid.UUID, int]:
        return await self._count(
            "count_distinct_climbers", queries.build_count_climbers_query, db, route_ids
        )

    async def _count(self, name, build, db: AsyncSession, route_ids: Sequence[uuid.UUID]):
        ids = tuple(sorted(set(route_ids), key=str))
        if not ids:
            return {}

        async def load() -> Dict[str, int]:
            result = await db.execute(build(ids))
            return {str(route_id): int(count) for route_id, count in result.all()}

        raw = await query_cache.cached(fingerprint(name, (ByIds(ids),)), _COUNTER_TABLES, load)
        return {route_id: raw.get(str(route_id), 0) for route_id in ids}

    # ── Writes ────────────────────────────────────────────────────────────

    @retry_on_conflict
    async def create(
        self, db: AsyncSession, data: CreateRouteInput, viewer: Optional[Viewer]
    ) -> Route:
        owner_id = viewer.user_id if viewer else None

        async with atomic(db, touches=CONTRIBUTABLE_TABLES + ("difficulty_vote",)):
            sector = await db.get(Sector, data.sector_id)
            if sector is None:
                raise NotFoundError(resource="sector", resource_id=str(data.sector_id))

            position = data.position
            if position is None:
                position = await next_position(db, Route, sector.id)

            difficulty = data.difficulty
            if difficulty is None and not data.is_project:
                difficulty = data.base_difficulty

            route = Route(
                name=data.name,
                slug=await unique_slug(
                    db, Route, data.name, scope=(Route.crag_id == sector.crag_id,)
                ),
                route_type_id=data.route_type_id,
                difficulty=difficulty,
                length=data.length,
                author=data.author,
                position=position,
                is_project=data.is_project,
                description=data.description,
                crag_id=sector.crag_id,
                sector_id=sector.id,
                publish_status=data.publish_status,
                user_id=owner_id,
            )
            db.add(route)
            await make_room(db, route)

            if data.base_difficulty is not None and not route.is_project:
                db.add(
                    DifficultyVote(
                        route_id=route.id,
                        user_id=None,
                        difficulty=data.base_difficulty,
                        is_base=True,
                    )
                )
                await db.flush()

            await update_contributions_flag(db, owner_id, route.publish_status)

        logger.info("Route created: %s in sector %s (%s)", route.slug, route.sector_id, route.id)
        return route

    async def update(self, db: AsyncSession, data: UpdateRouteInput) -> Route:
        async with atomic(db, touches=CONTRIBUTABLE_TABLES):
            route = await self.find_one_by_id(db, data.id)
            changes = data.changes()

            for field, value in changes.items():
                setattr(route, field, value)
            if "name" in changes:
                route.slug = await unique_slug(
                    db,
                    Route,
                    route.name,
                    scope=(Route.crag_id == route.crag_id,),
                    exclude_id=route.id,
                )
            if "position" in changes:
                await make_room(db, route)
            else:
                await db.flush()

            await update_contributions_flag(db, route.user_id, route.publish_status)

        logger.info("Route updated: %s (%s)", route.slug, ", ".join(sorted(changes)))
        return route

    async def delete(self, db: AsyncSession, route_id: uuid.UUID) -> bool:
        """Delete the route; its pitches, votes and ascent logs go with it."""
        async with atomic(
            db, touches=CONTRIBUTABLE_TABLES + ("activity_route", "difficulty_vote")
        ):
            route = await self.find_one_by_id(db, route_id)
            owner_id = route.user_id

            await db.delete(route)
            await db.flush()

            await update_contributions_flag(db, owner_id, None)

        logger.info("Route deleted: %s", route_id)
        return True


# Singleton instance
route_service = RouteService()

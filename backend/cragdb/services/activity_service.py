"""
CragDB Backend — Activity Service
===================================

What:  Logging a day out (activity) with its ascents, and removing single
       ascent log entries.
How:   One transaction per call. A qualifying ascent (redpoint, flash,
       onsight, repeat) that carries a grade stores the climber's difficulty
       vote for the route, replacing an earlier vote of the same climber.

Vote cleanup:
    Deleting an ascent log never touches votes here. The AFTER DELETE
    trigger on activity_route removes the climber's vote once no
    qualifying ascent of that route is left (see models/activity.py).
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import ForbiddenError, NotFoundError
from cragdb.models.activity import Activity, ActivityRoute
from cragdb.models.crag import Crag, Route
from cragdb.models.enums import TICK_ASCENT_TYPES
from cragdb.models.vote import DifficultyVote
from cragdb.schemas.inputs import CreateActivityInput
from cragdb.schemas.viewer import Viewer
from cragdb.services.transaction import ACTIVITY_TABLES, atomic

logger = logging.getLogger(__name__)


class ActivityService:
    async def log_activity(
        self, db: AsyncSession, data: CreateActivityInput, viewer: Viewer
    ) -> Activity:
        async with atomic(db, touches=ACTIVITY_TABLES):
            if data.crag_id is not None and await db.get(Crag, data.crag_id) is None:
                raise NotFoundError(resource="crag", resource_id=str(data.crag_id))

            activity = Activity(
                user_id=viewer.user_id,
                crag_id=data.crag_id,
                type=data.type,
                name=data.name,
                date=data.date,
                notes=data.notes,
            )
            db.add(activity)
            await db.flush()

            for entry in data.routes:
                if await db.get(Route, entry.route_id) is None:
                    raise NotFoundError(resource="route", resource_id=str(entry.route_id))

                db.add(
                    ActivityRoute(
                        activity_id=activity.id,
                        route_id=entry.route_id,
                        user_id=viewer.user_id,
                        ascent_type=entry.ascent_type,
                        publish=entry.publish,
                        date=data.date,
                        notes=entry.notes,
                    )
                )
                if entry.vote_difficulty is not None and entry.ascent_type in TICK_ASCENT_TYPES:
                    await self._vote(db, entry.route_id, viewer.user_id, entry.vote_difficulty)
                await db.flush()

        logger.info(
            "Activity logged: %s on %s with %d ascent(s)",
            activity.id,
            activity.date.isoformat(),
            len(data.routes),
        )
        return activity

    async def delete_activity_route(
        self, db: AsyncSession, activity_route_id: uuid.UUID, viewer: Viewer
    ) -> bool:
        async with atomic(db, touches=ACTIVITY_TABLES):
            ascent = await db.get(ActivityRoute, activity_route_id)
            if ascent is None:
                raise NotFoundError(resource="activity_route", resource_id=str(activity_route_id))
            if ascent.user_id != viewer.user_id and not viewer.is_admin:
                raise ForbiddenError(
                    message="Only the climber can delete this ascent",
                    context={"activity_route_id": str(activity_route_id)},
                )

            await db.delete(ascent)
            await db.flush()

        logger.info("Ascent log deleted: %s", activity_route_id)
        return True

    async def _vote(
        self, db: AsyncSession, route_id: uuid.UUID, user_id: uuid.UUID, difficulty: float
    ) -> None:
        vote = await db.scalar(
            select(DifficultyVote).where(
                DifficultyVote.route_id == route_id, DifficultyVote.user_id == user_id
            )
        )
        if vote is None:
            db.add(
                DifficultyVote(
                    route_id=route_id, user_id=user_id, difficulty=difficulty, is_base=False
                )
            )
        else:
            vote.difficulty = difficulty


# Singleton instance
activity_service = ActivityService()

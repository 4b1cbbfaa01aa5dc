"""
CragDB Backend — Difficulty Vote Cleanup Tests
================================================

What:  The AFTER DELETE trigger on activity_route, exercised through the
       activity service against the SQLite twin of the PostgreSQL trigger.

What we test:
    ✅ Deleting the sole qualifying ascent removes the climber's vote
    ✅ Deleting one of several qualifying ascents keeps the vote
    ✅ Non-qualifying ascents never count as ticks
    ✅ Other climbers' votes and the base vote are untouched
    ✅ Only the climber (or an admin) may delete an ascent
"""

import datetime
import uuid

import pytest
from sqlalchemy import select

from cragdb.exceptions import ForbiddenError, NotFoundError
from cragdb.models import ActivityRoute, DifficultyVote
from cragdb.models.enums import AscentType
from cragdb.schemas.inputs import ActivityRouteInput, CreateActivityInput, CreateRouteInput
from cragdb.schemas.viewer import Viewer
from cragdb.services.activity_service import activity_service
from cragdb.services.route_service import route_service


async def log(db, viewer, route_id, *ascents, vote=None):
    await activity_service.log_activity(
        db,
        CreateActivityInput(
            name="Day out",
            date=datetime.date(2024, 7, 14),
            routes=[
                ActivityRouteInput(route_id=route_id, ascent_type=ascent, vote_difficulty=vote)
                for ascent in ascents
            ],
        ),
        viewer,
    )


async def a_route(factory):
    crag = await factory.crag(await factory.country())
    return await factory.route(await factory.sector(crag, 1), 1)


async def ascents_of(session_factory, user_id, route_id):
    async with session_factory() as session:
        return (
            await session.scalars(
                select(ActivityRoute)
                .where(ActivityRoute.user_id == user_id, ActivityRoute.route_id == route_id)
                .order_by(ActivityRoute.ascent_type)
            )
        ).all()


async def votes_of(session_factory, route_id):
    async with session_factory() as session:
        return (
            await session.scalars(
                select(DifficultyVote).where(DifficultyVote.route_id == route_id)
            )
        ).all()


class TestVoteCleanup:
    @pytest.mark.asyncio
    async def test_last_tick_removes_vote(self, db, factory, session_factory):
        """Deleting the last tick should remove the climber's vote."""
        climber = await factory.user()
        route = await a_route(factory)
        await log(db, Viewer.of(climber), route.id, AscentType.REDPOINT, vote=1300)

        (tick,) = await ascents_of(session_factory, climber.id, route.id)
        await activity_service.delete_activity_route(db, tick.id, Viewer.of(climber))

        assert await votes_of(session_factory, route.id) == []

    @pytest.mark.asyncio
    async def test_remaining_tick_keeps_vote(self, db, factory, session_factory):
        """A remaining tick should keep the climber's vote."""
        climber = await factory.user()
        route = await a_route(factory)
        await log(
            db, Viewer.of(climber), route.id, AscentType.REDPOINT, AscentType.REPEAT, vote=1300
        )

        ascents = await ascents_of(session_factory, climber.id, route.id)
        await activity_service.delete_activity_route(db, ascents[0].id, Viewer.of(climber))

        votes = await votes_of(session_factory, route.id)
        assert [(v.user_id, v.difficulty) for v in votes] == [(climber.id, 1300)]

    @pytest.mark.asyncio
    async def test_attempt_does_not_count_as_tick(self, db, factory, session_factory):
        """An attempt left behind should not keep the vote."""
        climber = await factory.user()
        route = await a_route(factory)
        await log(db, Viewer.of(climber), route.id, AscentType.ONSIGHT, vote=1100)
        await log(db, Viewer.of(climber), route.id, AscentType.T_REDPOINT)

        onsight = next(
            a
            for a in await ascents_of(session_factory, climber.id, route.id)
            if a.ascent_type == AscentType.ONSIGHT
        )
        await activity_service.delete_activity_route(db, onsight.id, Viewer.of(climber))

        assert await votes_of(session_factory, route.id) == []

    @pytest.mark.asyncio
    async def test_vote_only_stored_for_qualifying_ascent(self, db, factory, session_factory):
        """A vote on a non-ticking ascent should not be stored."""
        climber = await factory.user()
        route = await a_route(factory)

        await log(db, Viewer.of(climber), route.id, AscentType.ATTEMPT, vote=1300)

        assert await votes_of(session_factory, route.id) == []

    @pytest.mark.asyncio
    async def test_other_votes_untouched(self, db, factory, session_factory):
        """Other climbers' votes and the base vote should survive."""
        alice = await factory.user()
        bob = await factory.user()
        sector = await factory.sector(await factory.crag(await factory.country()), 1)
        route = await route_service.create(
            db, CreateRouteInput(sector_id=sector.id, name="Babe", base_difficulty=1200), None
        )
        await log(db, Viewer.of(alice), route.id, AscentType.FLASH, vote=1250)
        await log(db, Viewer.of(bob), route.id, AscentType.REDPOINT, vote=1300)

        (alice_tick,) = await ascents_of(session_factory, alice.id, route.id)
        await activity_service.delete_activity_route(db, alice_tick.id, Viewer.of(alice))

        votes = await votes_of(session_factory, route.id)
        assert sorted((v.is_base, v.difficulty) for v in votes) == [(False, 1300), (True, 1200)]


class TestDeleteAscentPermissions:
    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, db, factory, session_factory):
        """Deleting someone else's ascent should raise ForbiddenError."""
        climber = await factory.user()
        stranger = await factory.user()
        route = await a_route(factory)
        await log(db, Viewer.of(climber), route.id, AscentType.REDPOINT)
        (tick,) = await ascents_of(session_factory, climber.id, route.id)

        with pytest.raises(ForbiddenError):
            await activity_service.delete_activity_route(db, tick.id, Viewer.of(stranger))

        assert len(await ascents_of(session_factory, climber.id, route.id)) == 1

    @pytest.mark.asyncio
    async def test_admin_can_delete(self, db, factory, session_factory):
        """An admin should be able to delete any ascent."""
        climber = await factory.user()
        admin = await factory.user(admin=True)
        route = await a_route(factory)
        await log(db, Viewer.of(climber), route.id, AscentType.REDPOINT)
        (tick,) = await ascents_of(session_factory, climber.id, route.id)

        assert await activity_service.delete_activity_route(db, tick.id, Viewer.of(admin))

    @pytest.mark.asyncio
    async def test_unknown_ascent(self, db, factory):
        """Deleting an unknown ascent should raise NotFoundError."""
        climber = await factory.user()
        with pytest.raises(NotFoundError):
            await activity_service.delete_activity_route(db, uuid.uuid4(), Viewer.of(climber))

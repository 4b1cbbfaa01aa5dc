"""
CragDB Backend — Sector Service Tests
=======================================

What we test:
    ✅ Create appends after the last sector when no position is given
    ✅ Update to an occupied position shifts the following sectors
    ✅ boulders_only
    ✅ move_to_crag: appended last, route slugs regenerated in the new crag,
       ascent logs re-homed into a matching activity, empty activities removed
"""

import datetime
import uuid

import pytest
from sqlalchemy import select

from cragdb.exceptions import NotFoundError
from cragdb.models import Activity, ActivityRoute, Route, Sector
from cragdb.models.enums import AscentType
from cragdb.schemas.inputs import (
    ActivityRouteInput,
    CreateActivityInput,
    CreateSectorInput,
    UpdateSectorInput,
)
from cragdb.schemas.viewer import Viewer
from cragdb.services.activity_service import activity_service
from cragdb.services.sector_service import sector_service


class TestSectorWrites:
    def setup_method(self):
        self.service = sector_service

    @pytest.mark.asyncio
    async def test_create_without_position_appends(self, db, factory):
        """A sector without a position should be appended last."""
        crag = await factory.crag(await factory.country())
        await factory.sector(crag, 1)
        await factory.sector(crag, 4)

        sector = await self.service.create(
            db, CreateSectorInput(crag_id=crag.id, name="New"), None
        )

        assert sector.position == 5

    @pytest.mark.asyncio
    async def test_create_in_unknown_crag(self, db):
        """Creating a sector in an unknown crag should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await self.service.create(db, CreateSectorInput(crag_id=uuid.uuid4(), name="X"), None)

    @pytest.mark.asyncio
    async def test_update_position_shifts_siblings(self, db, factory):
        """Moving a sector to a taken position should shift its siblings."""
        crag = await factory.crag(await factory.country())
        a = await factory.sector(crag, 1, name="A")
        b = await factory.sector(crag, 2, name="B")
        c = await factory.sector(crag, 3, name="C")

        await self.service.update(db, UpdateSectorInput(id=c.id, position=1))

        assert (await factory.get(Sector, c.id)).position == 1
        assert (await factory.get(Sector, a.id)).position == 2
        assert (await factory.get(Sector, b.id)).position == 3

    @pytest.mark.asyncio
    async def test_update_label_leaves_positions(self, db, factory):
        """Updating only the label should leave positions alone."""
        crag = await factory.crag(await factory.country())
        a = await factory.sector(crag, 1, name="A")
        b = await factory.sector(crag, 1, name="B")  # legacy duplicate

        await self.service.update(db, UpdateSectorInput(id=a.id, label="North"))

        assert (await factory.get(Sector, a.id)).label == "North"
        assert (await factory.get(Sector, b.id)).position == 1

    @pytest.mark.asyncio
    async def test_delete(self, db, factory):
        """Deleting a sector should remove its routes."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)
        route = await factory.route(sector, 1)

        await self.service.delete(db, sector.id)

        assert await factory.get(Sector, sector.id) is None
        assert await factory.get(Route, route.id) is None


class TestBouldersOnly:
    @pytest.mark.asyncio
    async def test_only_boulders(self, db, factory):
        """A sector of boulders only should report boulders_only."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)
        await factory.route(sector, 1, route_type_id="boulder")
        await factory.route(sector, 2, route_type_id="boulder")

        assert await sector_service.boulders_only(db, sector.id) is True

    @pytest.mark.asyncio
    async def test_mixed_types(self, db, factory):
        """A sector with mixed route types is not boulders_only."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)
        await factory.route(sector, 1, route_type_id="boulder")
        await factory.route(sector, 2, route_type_id="sport")

        assert await sector_service.boulders_only(db, sector.id) is False


class TestMoveToCrag:
    @pytest.mark.asyncio
    async def test_sector_and_routes_follow(self, db, factory):
        """A moved sector and its routes join the target crag with fresh slugs."""
        country = await factory.country()
        source = await factory.crag(country, name="Source")
        target = await factory.crag(country, name="Target")
        await factory.sector(target, 1)
        await factory.sector(target, 2)
        await factory.route(await factory.sector(target, 3), 1, name="Bitchy Crack")
        moving = await factory.sector(source, 1)
        clash = await factory.route(moving, 1, name="Bitchy Crack")
        plain = await factory.route(moving, 2, name="Snow White")

        moved = await sector_service.move_to_crag(db, moving.id, target.id)

        assert moved.crag_id == target.id
        assert (await factory.get(Sector, moving.id)).position == 4
        clash_after = await factory.get(Route, clash.id)
        assert clash_after.crag_id == target.id
        assert clash_after.slug == "bitchy-crack-1"
        assert (await factory.get(Route, plain.id)).slug == "snow-white"

    @pytest.mark.asyncio
    async def test_ascent_logs_are_rehomed(self, db, factory, session_factory):
        """Ascents on moved routes should move to an activity at the target crag."""
        climber = await factory.user()
        viewer = Viewer.of(climber)
        country = await factory.country()
        source = await factory.crag(country, name="Source")
        target = await factory.crag(country, name="Target")
        moving = await factory.sector(source, 1)
        staying = await factory.sector(source, 2)
        moving_route = await factory.route(moving, 1)
        staying_route = await factory.route(staying, 1)
        day = datetime.date(2024, 6, 1)

        # Only ascents on moving routes: the old activity empties out
        emptied = await activity_service.log_activity(
            db,
            CreateActivityInput(
                name="Source",
                date=day,
                crag_id=source.id,
                routes=[
                    ActivityRouteInput(route_id=moving_route.id, ascent_type=AscentType.REDPOINT)
                ],
            ),
            viewer,
        )
        # Mixed: the old activity keeps its other ascent
        kept = await activity_service.log_activity(
            db,
            CreateActivityInput(
                name="Source",
                date=day + datetime.timedelta(days=1),
                crag_id=source.id,
                routes=[
                    ActivityRouteInput(route_id=moving_route.id, ascent_type=AscentType.ATTEMPT),
                    ActivityRouteInput(route_id=staying_route.id, ascent_type=AscentType.FLASH),
                ],
            ),
            viewer,
        )

        await sector_service.move_to_crag(db, moving.id, target.id)

        assert await factory.get(Activity, emptied.id) is None
        assert await factory.get(Activity, kept.id) is not None

        async with session_factory() as session:
            target_activities = (
                await session.scalars(
                    select(Activity).where(Activity.crag_id == target.id).order_by(Activity.date)
                )
            ).all()
            assert [(a.date, a.name, a.user_id) for a in target_activities] == [
                (day, "Target", climber.id),
                (day + datetime.timedelta(days=1), "Target", climber.id),
            ]

            moved_logs = (
                await session.scalars(
                    select(ActivityRoute).where(ActivityRoute.route_id == moving_route.id)
                )
            ).all()
            target_ids = {a.id for a in target_activities}
            assert len(moved_logs) == 2
            assert all(log.activity_id in target_ids for log in moved_logs)

            staying_log = await session.scalar(
                select(ActivityRoute).where(ActivityRoute.route_id == staying_route.id)
            )
            assert staying_log.activity_id == kept.id

    @pytest.mark.asyncio
    async def test_same_crag_is_a_no_op(self, db, factory):
        """Moving a sector to its own crag should change nothing."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 3)

        moved = await sector_service.move_to_crag(db, sector.id, crag.id)

        assert moved.position == 3

    @pytest.mark.asyncio
    async def test_unknown_target(self, db, factory):
        """Moving a sector to an unknown crag should raise NotFoundError."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)

        with pytest.raises(NotFoundError):
            await sector_service.move_to_crag(db, sector.id, uuid.uuid4())

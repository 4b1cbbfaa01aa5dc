"""
CragDB Backend — Route Service Tests
======================================

What we test:
    ✅ Create: crag denormalized from the sector, per-crag slug, appended position
    ✅ Base difficulty vote created with the route (not for projects)
    ✅ Update: rename regenerates the slug within the crag, position shift
    ✅ A create that loses a slug race is retried with a fresh slug
    ✅ find_one_by_slug: visibility and hidden crags
    ✅ Tick / try / climber counters
"""

import datetime
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from cragdb.exceptions import NotFoundError
from cragdb.models import PublishStatus, Route
from cragdb.models.enums import AscentType
from cragdb.schemas.inputs import (
    ActivityRouteInput,
    CreateActivityInput,
    CreateRouteInput,
    UpdateRouteInput,
)
from cragdb.schemas.viewer import Viewer
from cragdb.services.activity_service import activity_service
from cragdb.services.route_service import route_service


class TestRouteCreate:
    def setup_method(self):
        self.service = route_service

    @pytest.mark.asyncio
    async def test_create_fills_crag_slug_and_position(self, db, factory):
        """A new route takes the sector's crag, a slug and the next position."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)
        await factory.route(sector, 1)

        route = await self.service.create(
            db, CreateRouteInput(sector_id=sector.id, name="Sanjski par"), None
        )

        assert route.crag_id == crag.id
        assert route.slug == "sanjski-par"
        assert route.position == 2

    @pytest.mark.asyncio
    async def test_base_difficulty_vote(self, db, factory):
        """A graded route should get a base difficulty vote."""
        sector = await factory.sector(await factory.crag(await factory.country()), 1)

        route = await self.service.create(
            db, CreateRouteInput(sector_id=sector.id, name="Babe", base_difficulty=1200), None
        )

        votes = await self.service.difficulty_votes(db, route.id)
        assert route.difficulty == 1200
        assert [(v.difficulty, v.is_base, v.user_id) for v in votes] == [(1200, True, None)]

    @pytest.mark.asyncio
    async def test_project_gets_no_base_vote(self, db, factory):
        """A project should get no base difficulty vote."""
        sector = await factory.sector(await factory.crag(await factory.country()), 1)

        route = await self.service.create(
            db,
            CreateRouteInput(
                sector_id=sector.id, name="Project", base_difficulty=1500, is_project=True
            ),
            None,
        )

        assert route.difficulty is None
        assert await self.service.difficulty_votes(db, route.id) == []

    @pytest.mark.asyncio
    async def test_unknown_sector(self, db):
        """Creating a route in an unknown sector should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await self.service.create(
                db, CreateRouteInput(sector_id=uuid.uuid4(), name="Nowhere"), None
            )

    @pytest.mark.asyncio
    async def test_lost_slug_race_is_retried(self, db, factory):
        """A create that loses a slug race should be retried with a fresh slug."""
        crag = await factory.crag(await factory.country())
        sector = await factory.sector(crag, 1)
        await factory.route(sector, 1, name="Taken")

        # First attempt picks a slug another writer already committed
        with patch(
            "cragdb.services.route_service.unique_slug",
            AsyncMock(side_effect=["taken", "taken-1"]),
        ) as slug_generator:
            route = await self.service.create(
                db, CreateRouteInput(sector_id=sector.id, name="Taken"), None
            )

        assert slug_generator.await_count == 2
        assert route.slug == "taken-1"
        assert (await factory.get(Route, route.id)).slug == "taken-1"


class TestRouteUpdate:
    @pytest.mark.asyncio
    async def test_rename_scoped_to_crag(self, db, factory):
        """A renamed route's slug should only avoid clashes within its crag."""
        country = await factory.country()
        crag = await factory.crag(country)
        other = await factory.crag(country)
        sector = await factory.sector(crag, 1)
        await factory.route(await factory.sector(other, 1), 1, name="Babe")
        route = await factory.route(sector, 1, name="Old name")

        updated = await route_service.update(db, UpdateRouteInput(id=route.id, name="Babe"))

        assert updated.slug == "babe"

    @pytest.mark.asyncio
    async def test_position_shift(self, db, factory):
        """Moving a route to a taken position should shift its followers."""
        sector = await factory.sector(await factory.crag(await factory.country()), 1)
        first = await factory.route(sector, 1)
        second = await factory.route(sector, 2)

        await route_service.update(db, UpdateRouteInput(id=second.id, position=1))

        assert (await factory.get(Route, second.id)).position == 1
        assert (await factory.get(Route, first.id)).position == 2

    @pytest.mark.asyncio
    async def test_delete(self, db, factory):
        """Deleting a route should remove it."""
        sector = await factory.sector(await factory.crag(await factory.country()), 1)
        route = await factory.route(sector, 1)

        assert await route_service.delete(db, route.id) is True
        assert await factory.get(Route, route.id) is None


class TestRouteBySlug:
    @pytest.mark.asyncio
    async def test_found(self, db, factory):
        """A published route should be found by crag and route slug."""
        crag = await factory.crag(await factory.country(), name="Osp")
        await factory.route(await factory.sector(crag, 1), 1, name="Babe")

        route = await route_service.find_one_by_slug(db, "osp", "babe", None)

        assert route.name == "Babe"

    @pytest.mark.asyncio
    async def test_draft_route_hidden_from_anonymous(self, db, factory):
        """A draft route should not be found by anonymous viewers."""
        owner = await factory.user()
        crag = await factory.crag(await factory.country(), name="Osp")
        await factory.route(
            await factory.sector(crag, 1), 1, name="Babe", status=PublishStatus.DRAFT, owner=owner
        )

        with pytest.raises(NotFoundError) as exc_info:
            await route_service.find_one_by_slug(db, "osp", "babe", None)
        assert exc_info.value.context["route_slug"] == "babe"

        assert (await route_service.find_one_by_slug(db, "osp", "babe", Viewer.of(owner))).name == "Babe"

    @pytest.mark.asyncio
    async def test_hidden_crag_needs_sign_in(self, db, factory):
        """Routes of a hidden crag should need a signed-in viewer."""
        user = await factory.user()
        crag = await factory.crag(await factory.country(), name="Secret", is_hidden=True)
        await factory.route(await factory.sector(crag, 1), 1, name="Babe")

        with pytest.raises(NotFoundError):
            await route_service.find_one_by_slug(db, "secret", "babe", None)
        assert await route_service.find_one_by_slug(db, "secret", "babe", Viewer.of(user))


class TestCounters:
    @pytest.mark.asyncio
    async def test_ticks_tries_and_climbers(self, db, factory):
        """Ticks, tries and distinct climbers should be counted per route."""
        alice = await factory.user()
        bob = await factory.user()
        sector = await factory.sector(await factory.crag(await factory.country()), 1)
        busy = await factory.route(sector, 1)
        untouched = await factory.route(sector, 2)

        for climber, ascents in (
            (alice, [AscentType.ATTEMPT, AscentType.REDPOINT]),
            (bob, [AscentType.FLASH]),
        ):
            await activity_service.log_activity(
                db,
                CreateActivityInput(
                    name="Day out",
                    date=datetime.date(2024, 4, 20),
                    routes=[
                        ActivityRouteInput(route_id=busy.id, ascent_type=ascent)
                        for ascent in ascents
                    ],
                ),
                Viewer.of(climber),
            )

        ids = [busy.id, untouched.id]
        assert await route_service.count_ticks(db, ids) == {busy.id: 2, untouched.id: 0}
        assert await route_service.count_tries(db, ids) == {busy.id: 3, untouched.id: 0}
        assert await route_service.count_distinct_climbers(db, ids) == {
            busy.id: 2,
            untouched.id: 0,
        }

    @pytest.mark.asyncio
    async def test_no_ids(self, db):
        """Counting over no routes should return an empty mapping without querying."""
        with patch.object(db, "execute", AsyncMock()) as execute:
            assert await route_service.count_ticks(db, []) == {}
            assert await route_service.count_distinct_climbers(db, []) == {}

        execute.assert_not_awaited()

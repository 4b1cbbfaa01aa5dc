"""
CragDB Backend — Position Sequencer Tests
===========================================

What we test:
    ✅ next_position appends after the last sibling (1 for an empty parent)
    ✅ Inserting at an occupied position shifts every following sibling by +1
    ✅ Gaps after the insert point are preserved
    ✅ No collision → nothing moves
    ✅ Sibling groups are independent (routes per sector)
"""

from typing import Dict

import pytest
from sqlalchemy import select

from cragdb.models import Route, Sector
from cragdb.services.positions import make_room, next_position


async def sector_positions(factory, crag_id) -> Dict[str, int]:
    async with factory.session_factory() as session:
        rows = await session.scalars(select(Sector).where(Sector.crag_id == crag_id))
        return {sector.name: sector.position for sector in rows}


class TestNextPosition:
    @pytest.mark.asyncio
    async def test_empty_parent_starts_at_one(self, db, factory):
        """The first child of a parent should get position 1."""
        crag = await factory.crag(await factory.country())
        assert await next_position(db, Sector, crag.id) == 1

    @pytest.mark.asyncio
    async def test_after_highest_sibling(self, db, factory):
        """The next position should follow the highest sibling."""
        crag = await factory.crag(await factory.country())
        await factory.sector(crag, 1)
        await factory.sector(crag, 7)
        assert await next_position(db, Sector, crag.id) == 8


class TestMakeRoom:
    @pytest.mark.asyncio
    async def test_insert_at_occupied_position_shifts_followers(self, db, factory):
        """Inserting at a taken position should shift it and its followers up."""
        crag = await factory.crag(await factory.country())
        await factory.sector(crag, 1, name="A")
        await factory.sector(crag, 2, name="B")

        new = Sector(crag_id=crag.id, name="X", position=1)
        db.add(new)
        moved = await make_room(db, new)
        await db.commit()

        assert moved == 2
        assert await sector_positions(factory, crag.id) == {"X": 1, "A": 2, "B": 3}

    @pytest.mark.asyncio
    async def test_gaps_are_preserved(self, db, factory):
        """Followers shift by one and keep the gaps between them."""
        crag = await factory.crag(await factory.country())
        await factory.sector(crag, 1, name="A")
        await factory.sector(crag, 5, name="C")

        new = Sector(crag_id=crag.id, name="X", position=1)
        db.add(new)
        await make_room(db, new)
        await db.commit()

        assert await sector_positions(factory, crag.id) == {"X": 1, "A": 2, "C": 6}

    @pytest.mark.asyncio
    async def test_free_position_moves_nothing(self, db, factory):
        """Inserting at a free position should move no sibling."""
        crag = await factory.crag(await factory.country())
        await factory.sector(crag, 1, name="A")
        await factory.sector(crag, 3, name="C")

        new = Sector(crag_id=crag.id, name="B", position=2)
        db.add(new)
        moved = await make_room(db, new)
        await db.commit()

        assert moved == 0
        assert await sector_positions(factory, crag.id) == {"A": 1, "B": 2, "C": 3}

    @pytest.mark.asyncio
    async def test_routes_shift_only_within_their_sector(self, db, factory):
        """Routes should only shift inside their own sector."""
        crag = await factory.crag(await factory.country())
        left = await factory.sector(crag, 1)
        right = await factory.sector(crag, 2)
        left_route = await factory.route(left, 1)
        right_route = await factory.route(right, 1)

        new = Route(
            name="New",
            slug="new",
            position=1,
            crag_id=crag.id,
            sector_id=left.id,
        )
        db.add(new)
        await make_room(db, new)
        await db.commit()

        assert (await factory.get(Route, left_route.id)).position == 2
        assert (await factory.get(Route, right_route.id)).position == 1

    @pytest.mark.asyncio
    async def test_no_two_siblings_share_a_position(self, db, factory):
        """After inserts, sibling positions should stay unique."""
        crag = await factory.crag(await factory.country())
        for position in (1, 2, 3, 4):
            await factory.sector(crag, position, name=f"S{position}")

        new = Sector(crag_id=crag.id, name="X", position=3)
        db.add(new)
        await make_room(db, new)
        await db.commit()

        positions = await sector_positions(factory, crag.id)
        assert len(set(positions.values())) == len(positions)
        assert positions == {"S1": 1, "S2": 2, "X": 3, "S3": 4, "S4": 5}

"""
CragDB Backend — Position Sequencer
=====================================

What:  Keeps sibling positions collision-free: sectors within a crag,
       routes within a sector.
How:   After an entity is saved at position P, if another sibling already
       sits at P, every sibling at position >= P (except the entity itself)
       moves down by exactly one. Siblings are rewritten one at a time in
       ascending order, inside the caller's transaction.

Policy (sectors and routes alike, on create and on update):
    ┌─────────────┐  insert X at 1   ┌─────────────┐
    │ A:1  B:2    │ ───────────────▶ │ X:1 A:2 B:3 │
    └─────────────┘                  └─────────────┘
    Gaps are preserved (A:1 C:5, insert X at 1 → X:1 A:2 C:6).
    No collision at P → nothing moves.

A failed write in the middle of a shift propagates; the transaction
orchestrator rolls the whole unit back.
"""

import logging
import uuid
from typing import Type, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.models.crag import Route, Sector

logger = logging.getLogger(__name__)

Positioned = Union[Sector, Route]

# Column that defines the sibling group of each positioned model
_PARENT_COLUMN = {
    Sector: "crag_id",
    Route: "sector_id",
}


def _parent_column(model: Type[Positioned]):
    return getattr(model, _PARENT_COLUMN[model])


async def next_position(
    db: AsyncSession, model: Type[Positioned], parent_id: uuid.UUID
) -> int:
    """Position right after the last sibling (1 for an empty parent)."""
    current_max = await db.scalar(
        select(func.max(model.position)).where(_parent_column(model) == parent_id)
    )
    return (current_max or 0) + 1


async def make_room(db: AsyncSession, entity: Positioned) -> int:
    """
    Shift the siblings following `entity` when one of them occupies its position.

    `entity` must already carry its final parent and position. It is flushed
    first so it has an id and is excluded from the sibling set.

    Returns:
        Number of siblings moved.
    """
    await db.flush()
    model = type(entity)
    parent_id = getattr(entity, _PARENT_COLUMN[model])

    following = (
        await db.scalars(
            select(model)
            .where(
                _parent_column(model) == parent_id,
                model.position >= entity.position,
                model.id != entity.id,
            )
            .order_by(model.position.asc())
        )
    ).all()

    if not following or following[0].position != entity.position:
        return 0

    for sibling in following:
        sibling.position += 1
        await db.flush()

    logger.debug(
        "Shifted %d %s sibling(s) from position %d under %s",
        len(following),
        model.__tablename__,
        entity.position,
        parent_id,
    )
    return len(following)

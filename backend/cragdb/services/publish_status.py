"""
CragDB Backend — Publish Status Rules
=======================================

What:  Everything that depends on PublishStatus: who may see what, how a
       status change travels down from a crag or sector, and the owner's
       `has_unpublished_contributions` flag.
How:   Plain async functions that run inside the caller's transaction
       (services/transaction.py). They never commit.

Visibility:
    minimum status:   anonymous → published, user → published, admin → in_review
    owners:           always see their own crags/sectors/routes, any status
    The same clause is applied to joined child aliases (e.g. the routes
    counted for a crag), so aggregates never leak hidden children.

Cascade (explicit opt-in on update):
    crag  ──▶ sectors  where sector.status == previous AND sector.user == crag.user
              └──▶ routes where route.status == previous AND route.user == sector.user
    sector ──▶ routes  (same rule)
    Children that diverged in status or ownership are left alone.
"""

import logging
import uuid
from typing import Optional, Union

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from cragdb.models.crag import Crag, Route, Sector
from cragdb.models.enums import UNPUBLISHED_STATUSES, PublishStatus
from cragdb.models.user import User
from cragdb.schemas.viewer import Viewer

logger = logging.getLogger(__name__)


# ── Visibility ────────────────────────────────────────────────────────────


def minimum_status(viewer: Optional[Viewer]) -> PublishStatus:
    if viewer is not None and viewer.is_admin:
        return PublishStatus.IN_REVIEW
    return PublishStatus.PUBLISHED


def visible_statuses(viewer: Optional[Viewer]):
    return sorted(PublishStatus.at_or_above(minimum_status(viewer)), key=lambda s: s.rank)


def visibility_clause(entity, viewer: Optional[Viewer]) -> ColumnElement:
    """
    WHERE/ON condition restricting `entity` (a contributable mapped class or
    an alias of one) to rows `viewer` may see.
    """
    visible = entity.publish_status.in_(visible_statuses(viewer))
    if viewer is None:
        return visible
    return or_(visible, entity.user_id == viewer.user_id)


# ── Cascade ───────────────────────────────────────────────────────────────


async def cascade_to_routes(
    db: AsyncSession, sector: Sector, previous_status: PublishStatus
) -> int:
    """Give the sector's inherited routes the sector's new status."""
    routes = (
        await db.scalars(
            select(Route)
            .where(
                Route.sector_id == sector.id,
                Route.publish_status == previous_status,
                Route.user_id == sector.user_id,
            )
            .order_by(Route.position)
        )
    ).all()

    for route in routes:
        route.publish_status = sector.publish_status
        await db.flush()

    return len(routes)


async def cascade_to_sectors(
    db: AsyncSession, crag: Crag, previous_status: PublishStatus
) -> int:
    """
    Give the crag's inherited sectors, and their inherited routes, the
    crag's new status.

    Returns:
        Number of sectors and routes changed.
    """
    sectors = (
        await db.scalars(
            select(Sector)
            .where(
                Sector.crag_id == crag.id,
                Sector.publish_status == previous_status,
                Sector.user_id == crag.user_id,
            )
            .order_by(Sector.position)
        )
    ).all()

    changed = 0
    for sector in sectors:
        sector.publish_status = crag.publish_status
        await db.flush()
        changed += 1 + await cascade_to_routes(db, sector, previous_status)

    return changed


async def cascade_publish_status(
    db: AsyncSession, parent: Union[Crag, Sector], previous_status: PublishStatus
) -> int:
    """Entry point used by the crag and sector services."""
    if parent.publish_status == previous_status:
        return 0

    if isinstance(parent, Crag):
        changed = await cascade_to_sectors(db, parent, previous_status)
    else:
        changed = await cascade_to_routes(db, parent, previous_status)

    logger.info(
        "Cascaded publish status %s → %s from %s %s to %d child(ren)",
        previous_status.value,
        parent.publish_status.value,
        parent.__tablename__,
        parent.id,
        changed,
    )
    return changed


# ── Contribution Flag ─────────────────────────────────────────────────────


async def has_unpublished_contributions(db: AsyncSession, user_id: uuid.UUID) -> bool:
    statuses = list(UNPUBLISHED_STATUSES)
    return bool(
        await db.scalar(
            select(
                or_(
                    exists().where(Crag.user_id == user_id, Crag.publish_status.in_(statuses)),
                    exists().where(
                        Sector.user_id == user_id, Sector.publish_status.in_(statuses)
                    ),
                    exists().where(
                        Route.user_id == user_id, Route.publish_status.in_(statuses)
                    ),
                )
            )
        )
    )


async def update_contributions_flag(
    db: AsyncSession,
    user_id: Optional[uuid.UUID],
    status: Optional[PublishStatus],
) -> None:
    """
    Refresh `User.has_unpublished_contributions` after a contributable write.

    Args:
        user_id: Owner of the written entity (None: nothing to do).
        status:  Status the entity was saved with; None after a delete.
                 An unpublished status sets the flag directly, anything
                 else needs a recount over the owner's entities.
    """
    if user_id is None:
        return

    user = await db.get(User, user_id)
    if user is None:
        return

    if status in UNPUBLISHED_STATUSES:
        flag = True
    else:
        flag = await has_unpublished_contributions(db, user_id)

    if user.has_unpublished_contributions != flag:
        user.has_unpublished_contributions = flag
        await db.flush()

"""
CragDB Backend — Query Builder
================================

What:  Builds the filtered, joined and aggregated SELECTs behind every read.
How:   Each builder takes a tuple of structured filter variants
       (schemas/filters.py) plus the viewer, maps every variant through an
       explicit handler table to one SQL condition, and adds the baseline
       visibility clause. Builders only construct statements; services
       execute them.

Handler tables:
    A variant a query does not support is a programming error and raises
    ValidationError instead of being silently ignored.

Aggregates:
    Aggregate builders return raw scalar columns (route_count, nr_visits,
    month/visits, ...). Entity builders add them only where documented
    (crags carry `route_count`; nothing else does).

Ordering:
    Crags, countries, peaks and ice falls are ordered by name, using
    `settings.name_collation` (e.g. utf8_slovenian_ci) when configured and
    lower(name) otherwise. Sectors and routes are ordered by position.
"""

import datetime
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Type

from sqlalchemy import Select, and_, collate, distinct, extract, func, select
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from cragdb.config import settings
from cragdb.exceptions import ValidationError
from cragdb.models.activity import Activity, ActivityRoute
from cragdb.models.comment import Comment
from cragdb.models.crag import Crag, Route, Sector
from cragdb.models.enums import TICK_ASCENT_TYPES, PublishStatus
from cragdb.models.geography import Area
from cragdb.schemas.filters import (
    ByArea,
    ByAreaSlug,
    ById,
    ByIds,
    ByCommentType,
    ByCountry,
    ByCrag,
    ByCragType,
    ByPeak,
    ByRoute,
    ByRoutes,
    ByRouteType,
    BySector,
    BySlug,
    Filter,
    Filters,
)
from cragdb.schemas.viewer import Viewer
from cragdb.services.publish_status import visibility_clause

Handler = Callable[[Filter], ColumnElement]


def name_order(column) -> ColumnElement:
    """Locale-aware, case-insensitive ordering expression for a name column."""
    if settings.name_collation:
        return collate(column, settings.name_collation)
    return func.lower(column)


def _conditions(
    query: str, handlers: Dict[Type, Handler], filters: Filters
) -> List[ColumnElement]:
    conditions = []
    for f in filters:
        handler = handlers.get(type(f))
        if handler is None:
            raise ValidationError(
                message=f"Filter {type(f).__name__} is not supported by {query}",
                context={"query": query, "filter": type(f).__name__},
            )
        conditions.append(handler(f))
    return conditions


def _area_ids_by_slug(slug: str):
    return select(Area.id).where(Area.slug == slug).scalar_subquery()


# ══════════════════════════════════════════════════════════════════════════
# Crags
# ══════════════════════════════════════════════════════════════════════════

# Routes counted for a crag; the alias carries its own visibility clause
counted_route = aliased(Route, name="route")

CRAG_FILTERS: Dict[Type, Handler] = {
    ById: lambda f: Crag.id == f.id,
    ByIds: lambda f: Crag.id.in_(f.ids),
    BySlug: lambda f: Crag.slug == f.slug,
    ByCountry: lambda f: Crag.country_id == f.country_id,
    ByArea: lambda f: Crag.area_id == f.area_id,
    ByAreaSlug: lambda f: Crag.area_id == _area_ids_by_slug(f.area_slug),
    ByPeak: lambda f: Crag.peak_id == f.peak_id,
    ByCragType: lambda f: Crag.type == f.type,
    # Applied to the joined routes: only crags with such routes, counting only those
    ByRouteType: lambda f: counted_route.route_type_id == f.route_type_id,
}


def build_crags_query(filters: Filters, viewer: Optional[Viewer]) -> Select:
    """
    SELECT crag, route_count: visible crags with the number of their
    routes the viewer may see.

    Hidden crags are excluded for anonymous viewers.
    """
    stmt = (
        select(Crag, func.count(counted_route.id).label("route_count"))
        .outerjoin(
            counted_route,
            and_(counted_route.crag_id == Crag.id, visibility_clause(counted_route, viewer)),
        )
        .where(visibility_clause(Crag, viewer))
        .where(*_conditions("crags", CRAG_FILTERS, filters))
        .group_by(Crag.id)
        .order_by(name_order(Crag.name))
    )
    if viewer is None:
        stmt = stmt.where(Crag.is_hidden.is_(False))
    return stmt


def build_number_of_routes_query(crag_id: uuid.UUID, viewer: Optional[Viewer]) -> Select:
    return select(func.count(distinct(Route.id))).where(
        Route.crag_id == crag_id, visibility_clause(Route, viewer)
    )


def build_popular_crags_query(
    date_from: Optional[datetime.date], top: Optional[int], show_hidden: bool
) -> Select:
    """SELECT crag_id, nr_visits of published crags, most visited first."""
    nr_visits = func.count(Activity.id).label("nr_visits")
    stmt = (
        select(Crag.id.label("crag_id"), nr_visits)
        .outerjoin(Activity, Activity.crag_id == Crag.id)
        .where(Crag.publish_status == PublishStatus.PUBLISHED)
        .group_by(Crag.id)
        .order_by(nr_visits.desc(), Crag.id)
    )
    if not show_hidden:
        stmt = stmt.where(Crag.is_hidden.is_(False))
    if date_from is not None:
        stmt = stmt.where(Activity.date >= date_from)
    if top:
        stmt = stmt.limit(top)
    return stmt


def build_activity_by_month_query(crag_id: uuid.UUID) -> Select:
    """SELECT month (1-12), visits: ascent logs on the crag's routes per calendar month."""
    month = extract("month", ActivityRoute.date)
    return (
        select(month.label("month"), func.count(ActivityRoute.id).label("visits"))
        .join(Route, Route.id == ActivityRoute.route_id)
        .where(Route.crag_id == crag_id)
        .group_by(month)
        .order_by(month)
    )


# ══════════════════════════════════════════════════════════════════════════
# Sectors & Routes
# ══════════════════════════════════════════════════════════════════════════

SECTOR_FILTERS: Dict[Type, Handler] = {
    ById: lambda f: Sector.id == f.id,
    ByIds: lambda f: Sector.id.in_(f.ids),
    ByCrag: lambda f: Sector.crag_id == f.crag_id,
}


def build_sectors_query(filters: Filters, viewer: Optional[Viewer]) -> Select:
    return (
        select(Sector)
        .where(visibility_clause(Sector, viewer))
        .where(*_conditions("sectors", SECTOR_FILTERS, filters))
        .order_by(Sector.position.asc())
    )


ROUTE_FILTERS: Dict[Type, Handler] = {
    ById: lambda f: Route.id == f.id,
    ByIds: lambda f: Route.id.in_(f.ids),
    BySlug: lambda f: Route.slug == f.slug,
    BySector: lambda f: Route.sector_id == f.sector_id,
    ByCrag: lambda f: Route.crag_id == f.crag_id,
    ByRouteType: lambda f: Route.route_type_id == f.route_type_id,
}


def build_routes_query(filters: Filters, viewer: Optional[Viewer]) -> Select:
    return (
        select(Route)
        .where(visibility_clause(Route, viewer))
        .where(*_conditions("routes", ROUTE_FILTERS, filters))
        .order_by(Route.position.asc())
    )


def build_route_by_slug_query(
    crag_slug: str, route_slug: str, viewer: Optional[Viewer]
) -> Select:
    stmt = (
        select(Route)
        .join(Crag, Crag.id == Route.crag_id)
        .where(
            Route.slug == route_slug,
            Crag.slug == crag_slug,
            visibility_clause(Route, viewer),
            visibility_clause(Crag, viewer),
        )
    )
    if viewer is None:
        stmt = stmt.where(Crag.is_hidden.is_(False))
    return stmt


def _route_counts(count_expr, route_ids: Sequence[uuid.UUID], join_on=None) -> Select:
    on = ActivityRoute.route_id == Route.id
    if join_on is not None:
        on = and_(on, join_on)
    return (
        select(Route.id, count_expr)
        .outerjoin(ActivityRoute, on)
        .where(Route.id.in_(list(route_ids)))
        .group_by(Route.id)
    )


def build_count_ticks_query(route_ids: Sequence[uuid.UUID]) -> Select:
    return _route_counts(
        func.count(ActivityRoute.id).label("nr_ticks"),
        route_ids,
        ActivityRoute.ascent_type.in_(list(TICK_ASCENT_TYPES)),
    )


def build_count_tries_query(route_ids: Sequence[uuid.UUID]) -> Select:
    return _route_counts(func.count(ActivityRoute.id).label("nr_tries"), route_ids)


def build_count_climbers_query(route_ids: Sequence[uuid.UUID]) -> Select:
    return _route_counts(
        func.count(distinct(ActivityRoute.user_id)).label("nr_climbers"), route_ids
    )


# ══════════════════════════════════════════════════════════════════════════
# Comments
# ══════════════════════════════════════════════════════════════════════════

COMMENT_FILTERS: Dict[Type, Handler] = {
    ByRoute: lambda f: Comment.route_id == f.route_id,
    ByRoutes: lambda f: Comment.route_id.in_(f.route_ids),
    ByCrag: lambda f: Comment.crag_id == f.crag_id,
    ByCommentType: lambda f: Comment.type == f.type,
}


def build_comments_query(filters: Filters) -> Select:
    return (
        select(Comment)
        .where(*_conditions("comments", COMMENT_FILTERS, filters))
        .order_by(Comment.created_at.desc())
    )


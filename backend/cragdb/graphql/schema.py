"""
CragDB Backend — GraphQL Schema
=================================

What:  Query and Mutation roots, and the executable schema.
How:   Resolvers are thin: convert the Strawberry input into the pydantic
       model (graphql/inputs.py → schemas/inputs.py), call one service
       method with the request session and the viewer, wrap the result in
       its output type. No business rule lives here.
Who:   Mounted at /graphql by main.py.

Access:
    crag / sector / route / country mutations   IsAdmin
    comments, ascents, club memberships         IsAuthenticated
    queries                                     everyone (visibility applies)

Every successful mutation writes one audit record on the `cragdb.audit`
logger: who, what, which entity.
"""

import datetime
import logging
from typing import List, Optional

import strawberry
from strawberry.extensions import SchemaExtension
from strawberry.types import Info

from cragdb.config import settings
from cragdb.graphql import inputs
from cragdb.graphql.errors import ErrorTranslation
from cragdb.graphql.inputs import parse_id, to_model
from cragdb.graphql.permissions import IsAdmin, IsAuthenticated
from cragdb.graphql.types import (
    Activity,
    ClubMember,
    Comment,
    Country,
    Crag,
    Peak,
    PopularCrag,
    Route,
    Sector,
    User,
)
from cragdb.schemas import inputs as schemas
from cragdb.services.activity_service import activity_service
from cragdb.services.club_member_service import club_member_service
from cragdb.services.comment_service import comment_service
from cragdb.services.country_service import country_service
from cragdb.services.crag_service import crag_service
from cragdb.services.geography_service import peak_service
from cragdb.services.route_service import route_service
from cragdb.services.sector_service import sector_service

audit_logger = logging.getLogger("cragdb.audit")


class OperationNameRecorder(SchemaExtension):
    """Leaves the executed operation name on the request for the access log."""

    def on_operation(self):
        yield
        request = getattr(self.execution_context.context, "request", None)
        if request is not None:
            request.state.graphql_operation = self.execution_context.operation_name


def _audit(info: Info, mutation: str, entity_id) -> None:
    viewer = info.context.viewer
    audit_logger.info(
        "mutation=%s user=%s entity=%s",
        mutation,
        viewer.user_id if viewer else "-",
        entity_id,
    )


# ══════════════════════════════════════════════════════════════════════════
# Queries
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class Query:
    @strawberry.field
    async def me(self, info: Info) -> Optional[User]:
        user = info.context.user
        return User.from_model(user) if user is not None else None

    # ── Crags ─────────────────────────────────────────────────────────────

    @strawberry.field
    async def crags(
        self, info: Info, input: Optional[inputs.FindCragsInput] = None
    ) -> List[Crag]:
        params = to_model(schemas.FindCragsInput, input)
        async with info.context.session() as db:
            rows = await crag_service.find(db, params, info.context.viewer)
        return [Crag.from_row(row) for row in rows]

    @strawberry.field
    async def crag(self, info: Info, input: inputs.FindCragsInput) -> Crag:
        params = to_model(schemas.FindCragsInput, input)
        async with info.context.session() as db:
            row = await crag_service.find_one(db, params, info.context.viewer)
        return Crag.from_row(row)

    @strawberry.field
    async def popular_crags(
        self,
        info: Info,
        date_from: Optional[datetime.date] = None,
        top: Optional[int] = None,
    ) -> List[PopularCrag]:
        show_hidden = info.context.viewer is not None
        async with info.context.session() as db:
            popular = await crag_service.popular_crags(
                db, date_from, top or settings.popular_crags_limit, show_hidden
            )
        return [PopularCrag(crag=Crag.from_model(p.crag), nr_visits=p.nr_visits) for p in popular]

    # ── Sectors & routes ──────────────────────────────────────────────────

    @strawberry.field
    async def sectors(
        self, info: Info, input: Optional[inputs.FindSectorsInput] = None
    ) -> List[Sector]:
        params = to_model(schemas.FindSectorsInput, input)
        async with info.context.session() as db:
            sectors = await sector_service.find(db, params, info.context.viewer)
        return [Sector.from_model(s) for s in sectors]

    @strawberry.field
    async def routes(
        self, info: Info, input: Optional[inputs.FindRoutesInput] = None
    ) -> List[Route]:
        params = to_model(schemas.FindRoutesInput, input)
        async with info.context.session() as db:
            routes = await route_service.find(db, params, info.context.viewer)
        return [Route.from_model(r) for r in routes]

    @strawberry.field
    async def route(self, info: Info, crag_slug: str, slug: str) -> Route:
        async with info.context.session() as db:
            route = await route_service.find_one_by_slug(db, crag_slug, slug, info.context.viewer)
        return Route.from_model(route)

    # ── Geography ─────────────────────────────────────────────────────────

    @strawberry.field
    async def countries(
        self, info: Info, input: Optional[inputs.FindCountriesInput] = None
    ) -> List[Country]:
        params = to_model(schemas.FindCountriesInput, input)
        async with info.context.session() as db:
            countries = await country_service.find(db, params)
        return [Country.from_model(c) for c in countries]

    @strawberry.field
    async def country_by_slug(self, info: Info, slug: str) -> Country:
        async with info.context.session() as db:
            return Country.from_model(await country_service.find_by_slug(db, slug))

    @strawberry.field
    async def peak(self, info: Info, slug: str) -> Peak:
        async with info.context.session() as db:
            return Peak.from_model(await peak_service.get_by_slug(db, slug))

    # ── Comments ──────────────────────────────────────────────────────────

    @strawberry.field
    async def comments(
        self, info: Info, input: Optional[inputs.FindCommentsInput] = None
    ) -> List[Comment]:
        params = to_model(schemas.FindCommentsInput, input)
        async with info.context.session() as db:
            comments = await comment_service.find(db, params)
        return [Comment.from_model(c) for c in comments]

    @strawberry.field
    async def exposed_warnings(self, info: Info) -> List[Comment]:
        async with info.context.session() as db:
            comments = await comment_service.exposed_warnings(db)
        return [Comment.from_model(c) for c in comments]


# ══════════════════════════════════════════════════════════════════════════
# Mutations
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class Mutation:
    # ── Crags ─────────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_crag(self, info: Info, input: inputs.CreateCragInput) -> Crag:
        data = to_model(schemas.CreateCragInput, input)
        async with info.context.session() as db:
            crag = await crag_service.create(db, data, info.context.viewer)
        _audit(info, "createCrag", crag.id)
        return Crag.from_model(crag)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def update_crag(self, info: Info, input: inputs.UpdateCragInput) -> Crag:
        data = to_model(schemas.UpdateCragInput, input)
        async with info.context.session() as db:
            crag = await crag_service.update(db, data)
        _audit(info, "updateCrag", crag.id)
        return Crag.from_model(crag)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def delete_crag(self, info: Info, id: strawberry.ID) -> bool:
        crag_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await crag_service.delete(db, crag_id)
        _audit(info, "deleteCrag", crag_id)
        return deleted

    # ── Sectors ───────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_sector(self, info: Info, input: inputs.CreateSectorInput) -> Sector:
        data = to_model(schemas.CreateSectorInput, input)
        async with info.context.session() as db:
            sector = await sector_service.create(db, data, info.context.viewer)
        _audit(info, "createSector", sector.id)
        return Sector.from_model(sector)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def update_sector(self, info: Info, input: inputs.UpdateSectorInput) -> Sector:
        data = to_model(schemas.UpdateSectorInput, input)
        async with info.context.session() as db:
            sector = await sector_service.update(db, data)
        _audit(info, "updateSector", sector.id)
        return Sector.from_model(sector)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def delete_sector(self, info: Info, id: strawberry.ID) -> bool:
        sector_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await sector_service.delete(db, sector_id)
        _audit(info, "deleteSector", sector_id)
        return deleted

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def move_sector_to_crag(
        self, info: Info, id: strawberry.ID, crag_id: strawberry.ID
    ) -> Sector:
        sector_id = parse_id(id)
        target_id = parse_id(crag_id)
        async with info.context.session() as db:
            sector = await sector_service.move_to_crag(db, sector_id, target_id)
        _audit(info, "moveSectorToCrag", sector.id)
        return Sector.from_model(sector)

    # ── Routes ────────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_route(self, info: Info, input: inputs.CreateRouteInput) -> Route:
        data = to_model(schemas.CreateRouteInput, input)
        async with info.context.session() as db:
            route = await route_service.create(db, data, info.context.viewer)
        _audit(info, "createRoute", route.id)
        return Route.from_model(route)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def update_route(self, info: Info, input: inputs.UpdateRouteInput) -> Route:
        data = to_model(schemas.UpdateRouteInput, input)
        async with info.context.session() as db:
            route = await route_service.update(db, data)
        _audit(info, "updateRoute", route.id)
        return Route.from_model(route)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def delete_route(self, info: Info, id: strawberry.ID) -> bool:
        route_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await route_service.delete(db, route_id)
        _audit(info, "deleteRoute", route_id)
        return deleted

    # ── Countries ─────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_country(self, info: Info, input: inputs.CreateCountryInput) -> Country:
        data = to_model(schemas.CreateCountryInput, input)
        async with info.context.session() as db:
            country = await country_service.create(db, data)
        _audit(info, "createCountry", country.id)
        return Country.from_model(country)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def update_country(self, info: Info, input: inputs.UpdateCountryInput) -> Country:
        data = to_model(schemas.UpdateCountryInput, input)
        async with info.context.session() as db:
            country = await country_service.update(db, data)
        _audit(info, "updateCountry", country.id)
        return Country.from_model(country)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def delete_country(self, info: Info, id: strawberry.ID) -> bool:
        country_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await country_service.delete(db, country_id)
        _audit(info, "deleteCountry", country_id)
        return deleted

    # ── Comments ──────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_comment(self, info: Info, input: inputs.CreateCommentInput) -> Comment:
        data = to_model(schemas.CreateCommentInput, input)
        async with info.context.session() as db:
            comment = await comment_service.create(db, data, info.context.viewer)
        _audit(info, "createComment", comment.id)
        return Comment.from_model(comment)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def update_comment(self, info: Info, input: inputs.UpdateCommentInput) -> Comment:
        data = to_model(schemas.UpdateCommentInput, input)
        async with info.context.session() as db:
            comment = await comment_service.update(db, data, info.context.viewer)
        _audit(info, "updateComment", comment.id)
        return Comment.from_model(comment)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_comment(self, info: Info, id: strawberry.ID) -> bool:
        comment_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await comment_service.delete(db, comment_id, info.context.viewer)
        _audit(info, "deleteComment", comment_id)
        return deleted

    # ── Activities ────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def log_activity(self, info: Info, input: inputs.CreateActivityInput) -> Activity:
        data = to_model(schemas.CreateActivityInput, input)
        async with info.context.session() as db:
            activity = await activity_service.log_activity(db, data, info.context.viewer)
        _audit(info, "logActivity", activity.id)
        return Activity.from_model(activity)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_activity_route(self, info: Info, id: strawberry.ID) -> bool:
        activity_route_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await activity_service.delete_activity_route(
                db, activity_route_id, info.context.viewer
            )
        _audit(info, "deleteActivityRoute", activity_route_id)
        return deleted

    # ── Clubs ─────────────────────────────────────────────────────────────

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_club_member(
        self, info: Info, input: inputs.CreateClubMemberInput
    ) -> ClubMember:
        data = to_model(schemas.CreateClubMemberInput, input)
        async with info.context.session() as db:
            member = await club_member_service.create(db, data, info.context.viewer)
        _audit(info, "createClubMember", member.id)
        return ClubMember.from_model(member)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def create_club_member_by_email(
        self, info: Info, input: inputs.CreateClubMemberByEmailInput
    ) -> ClubMember:
        data = to_model(schemas.CreateClubMemberByEmailInput, input)
        async with info.context.session() as db:
            member = await club_member_service.create_by_email(db, data, info.context.viewer)
        _audit(info, "createClubMemberByEmail", member.id)
        return ClubMember.from_model(member)

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_club_member(self, info: Info, id: strawberry.ID) -> bool:
        member_id = parse_id(id)
        async with info.context.session() as db:
            deleted = await club_member_service.delete(db, member_id, info.context.viewer)
        _audit(info, "deleteClubMember", member_id)
        return deleted


schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    extensions=[OperationNameRecorder, ErrorTranslation],
)

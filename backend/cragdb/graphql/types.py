"""
CragDB Backend — GraphQL Object Types
=======================================

What:  The output side of the schema: one Strawberry type per exposed entity.
How:   Each type is a plain snapshot of its ORM row (`from_model`). Fields that
       need another query resolve lazily through the services, borrowing the
       request session via `info.context.session()`. Route counters go through
       the request's data loaders so a list of routes costs one query each.
"""

import datetime
import uuid
from typing import List, Optional

import strawberry
from strawberry.types import Info

from cragdb import models
from cragdb.models.enums import (
    ActivityType,
    AscentType,
    CommentType,
    CragType,
    PublishStatus,
    PublishType,
)
from cragdb.schemas.inputs import FindCommentsInput, FindRoutesInput, FindSectorsInput
from cragdb.services.comment_service import comment_service
from cragdb.services.crag_service import CragWithRouteCount, crag_service
from cragdb.services.geography_service import ice_fall_service, peak_service
from cragdb.services.route_service import route_service
from cragdb.services.sector_service import sector_service

# ── Enums ─────────────────────────────────────────────────────────────────
strawberry.enum(PublishStatus)
strawberry.enum(CragType)
strawberry.enum(ActivityType)
strawberry.enum(AscentType)
strawberry.enum(PublishType)
strawberry.enum(CommentType)


def _id(value: Optional[uuid.UUID]) -> Optional[strawberry.ID]:
    return strawberry.ID(str(value)) if value is not None else None


# ══════════════════════════════════════════════════════════════════════════
# Users & Clubs
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class User:
    id: strawberry.ID
    first_name: str
    last_name: str
    full_name: str

    @classmethod
    def from_model(cls, user: models.User) -> "User":
        return cls(
            id=_id(user.id),
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
        )


@strawberry.type
class ClubMember:
    id: strawberry.ID
    club_id: strawberry.ID
    user_id: strawberry.ID
    admin: bool

    @classmethod
    def from_model(cls, member: models.ClubMember) -> "ClubMember":
        return cls(
            id=_id(member.id),
            club_id=_id(member.club_id),
            user_id=_id(member.user_id),
            admin=member.admin,
        )


# ══════════════════════════════════════════════════════════════════════════
# Geography
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class Peak:
    id: strawberry.ID
    name: str
    slug: str
    height: Optional[int]

    @strawberry.field
    async def nr_crags(self, info: Info) -> int:
        async with info.context.session() as db:
            return await peak_service.number_of_crags(db, uuid.UUID(self.id), info.context.viewer)

    @classmethod
    def from_model(cls, peak: models.Peak) -> "Peak":
        return cls(id=_id(peak.id), name=peak.name, slug=peak.slug, height=peak.height)


@strawberry.type
class IceFall:
    id: strawberry.ID
    name: str
    slug: str
    description: Optional[str]
    publish_status: PublishStatus

    @classmethod
    def from_model(cls, ice_fall: models.IceFall) -> "IceFall":
        return cls(
            id=_id(ice_fall.id),
            name=ice_fall.name,
            slug=ice_fall.slug,
            description=ice_fall.description,
            publish_status=ice_fall.publish_status,
        )


@strawberry.type
class Country:
    id: strawberry.ID
    name: str
    code: str
    slug: str
    nr_crags: int

    @strawberry.field
    async def peaks(self, info: Info, area_slug: Optional[str] = None) -> List[Peak]:
        async with info.context.session() as db:
            peaks = await peak_service.peaks_of_country(db, uuid.UUID(self.id), area_slug)
        return [Peak.from_model(p) for p in peaks]

    @strawberry.field
    async def nr_peaks(self, info: Info) -> int:
        async with info.context.session() as db:
            return await peak_service.number_of_peaks(db, uuid.UUID(self.id))

    @strawberry.field
    async def ice_falls(self, info: Info, area_slug: Optional[str] = None) -> List[IceFall]:
        async with info.context.session() as db:
            ice_falls = await ice_fall_service.ice_falls_of_country(
                db, uuid.UUID(self.id), info.context.viewer, area_slug
            )
        return [IceFall.from_model(i) for i in ice_falls]

    @strawberry.field
    async def nr_ice_falls(self, info: Info) -> int:
        async with info.context.session() as db:
            return await ice_fall_service.number_of_ice_falls(
                db, uuid.UUID(self.id), info.context.viewer
            )

    @classmethod
    def from_model(cls, country: models.Country) -> "Country":
        return cls(
            id=_id(country.id),
            name=country.name,
            code=country.code,
            slug=country.slug,
            nr_crags=country.nr_crags,
        )


# ══════════════════════════════════════════════════════════════════════════
# Comments, votes, pitches, activities
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class Comment:
    id: strawberry.ID
    type: CommentType
    content: str
    user_id: Optional[strawberry.ID]
    crag_id: Optional[strawberry.ID]
    route_id: Optional[strawberry.ID]
    ice_fall_id: Optional[strawberry.ID]
    exposed_until: Optional[datetime.date]
    created_at: datetime.datetime

    @classmethod
    def from_model(cls, comment: models.Comment) -> "Comment":
        return cls(
            id=_id(comment.id),
            type=comment.type,
            content=comment.content,
            user_id=_id(comment.user_id),
            crag_id=_id(comment.crag_id),
            route_id=_id(comment.route_id),
            ice_fall_id=_id(comment.ice_fall_id),
            exposed_until=comment.exposed_until,
            created_at=comment.created_at,
        )


@strawberry.type
class DifficultyVote:
    id: strawberry.ID
    difficulty: float
    is_base: bool
    user_id: Optional[strawberry.ID]

    @classmethod
    def from_model(cls, vote: models.DifficultyVote) -> "DifficultyVote":
        return cls(
            id=_id(vote.id),
            difficulty=vote.difficulty,
            is_base=vote.is_base,
            user_id=_id(vote.user_id),
        )


@strawberry.type
class Pitch:
    id: strawberry.ID
    number: int
    difficulty: Optional[float]
    height: Optional[int]

    @classmethod
    def from_model(cls, pitch: models.Pitch) -> "Pitch":
        return cls(
            id=_id(pitch.id), number=pitch.number, difficulty=pitch.difficulty, height=pitch.height
        )


@strawberry.type
class Activity:
    id: strawberry.ID
    type: ActivityType
    name: str
    date: datetime.date
    crag_id: Optional[strawberry.ID]
    notes: Optional[str]

    @classmethod
    def from_model(cls, activity: models.Activity) -> "Activity":
        return cls(
            id=_id(activity.id),
            type=activity.type,
            name=activity.name,
            date=activity.date,
            crag_id=_id(activity.crag_id),
            notes=activity.notes,
        )


# ══════════════════════════════════════════════════════════════════════════
# Crags, sectors, routes
# ══════════════════════════════════════════════════════════════════════════


@strawberry.type
class Route:
    id: strawberry.ID
    name: str
    slug: str
    route_type_id: str
    difficulty: Optional[float]
    star_rating: Optional[float]
    length: Optional[int]
    author: Optional[str]
    position: int
    is_project: bool
    description: Optional[str]
    publish_status: PublishStatus
    crag_id: strawberry.ID
    sector_id: strawberry.ID

    @strawberry.field
    async def nr_ticks(self, info: Info) -> int:
        return await info.context.ticks_loader.load(uuid.UUID(self.id))

    @strawberry.field
    async def nr_tries(self, info: Info) -> int:
        return await info.context.tries_loader.load(uuid.UUID(self.id))

    @strawberry.field
    async def nr_climbers(self, info: Info) -> int:
        return await info.context.climbers_loader.load(uuid.UUID(self.id))

    @strawberry.field
    async def pitches(self, info: Info) -> List[Pitch]:
        async with info.context.session() as db:
            pitches = await route_service.pitches(db, uuid.UUID(self.id))
        return [Pitch.from_model(p) for p in pitches]

    @strawberry.field
    async def difficulty_votes(self, info: Info) -> List[DifficultyVote]:
        async with info.context.session() as db:
            votes = await route_service.difficulty_votes(db, uuid.UUID(self.id))
        return [DifficultyVote.from_model(v) for v in votes]

    @strawberry.field
    async def comments(self, info: Info) -> List[Comment]:
        async with info.context.session() as db:
            comments = await comment_service.find(db, FindCommentsInput(route_id=self.id))
        return [Comment.from_model(c) for c in comments]

    @classmethod
    def from_model(cls, route: models.Route) -> "Route":
        return cls(
            id=_id(route.id),
            name=route.name,
            slug=route.slug,
            route_type_id=route.route_type_id,
            difficulty=route.difficulty,
            star_rating=route.star_rating,
            length=route.length,
            author=route.author,
            position=route.position,
            is_project=route.is_project,
            description=route.description,
            publish_status=route.publish_status,
            crag_id=_id(route.crag_id),
            sector_id=_id(route.sector_id),
        )


@strawberry.type
class Sector:
    id: strawberry.ID
    name: str
    label: str
    position: int
    publish_status: PublishStatus
    crag_id: strawberry.ID

    @strawberry.field
    async def routes(self, info: Info) -> List[Route]:
        async with info.context.session() as db:
            routes = await route_service.find(
                db, FindRoutesInput(sector_id=self.id), info.context.viewer
            )
        return [Route.from_model(r) for r in routes]

    @strawberry.field
    async def boulders_only(self, info: Info) -> bool:
        async with info.context.session() as db:
            return await sector_service.boulders_only(db, uuid.UUID(self.id))

    @classmethod
    def from_model(cls, sector: models.Sector) -> "Sector":
        return cls(
            id=_id(sector.id),
            name=sector.name,
            label=sector.label,
            position=sector.position,
            publish_status=sector.publish_status,
            crag_id=_id(sector.crag_id),
        )


@strawberry.type
class Crag:
    id: strawberry.ID
    name: str
    slug: str
    type: CragType
    is_hidden: bool
    lat: Optional[float]
    lon: Optional[float]
    description: Optional[str]
    publish_status: PublishStatus
    country_id: strawberry.ID
    area_id: Optional[strawberry.ID]
    peak_id: Optional[strawberry.ID]
    # Visible routes; only filled when the crag came from a crag listing
    route_count: Optional[int] = None

    @strawberry.field
    async def nr_routes(self, info: Info) -> int:
        async with info.context.session() as db:
            return await crag_service.number_of_routes(db, uuid.UUID(self.id), info.context.viewer)

    @strawberry.field
    async def sectors(self, info: Info) -> List[Sector]:
        async with info.context.session() as db:
            sectors = await sector_service.find(
                db, FindSectorsInput(crag_id=self.id), info.context.viewer
            )
        return [Sector.from_model(s) for s in sectors]

    @strawberry.field(description="Ascents logged per month, January first")
    async def activity_by_month(self, info: Info) -> List[int]:
        async with info.context.session() as db:
            return await crag_service.activity_by_month(db, uuid.UUID(self.id))

    @strawberry.field
    async def comments(self, info: Info) -> List[Comment]:
        async with info.context.session() as db:
            comments = await comment_service.find(db, FindCommentsInput(crag_id=self.id))
        return [Comment.from_model(c) for c in comments]

    @classmethod
    def from_model(cls, crag: models.Crag, route_count: Optional[int] = None) -> "Crag":
        return cls(
            id=_id(crag.id),
            name=crag.name,
            slug=crag.slug,
            type=crag.type,
            is_hidden=crag.is_hidden,
            lat=crag.lat,
            lon=crag.lon,
            description=crag.description,
            publish_status=crag.publish_status,
            country_id=_id(crag.country_id),
            area_id=_id(crag.area_id),
            peak_id=_id(crag.peak_id),
            route_count=route_count,
        )

    @classmethod
    def from_row(cls, row: CragWithRouteCount) -> "Crag":
        return cls.from_model(row.crag, row.route_count)


@strawberry.type
class PopularCrag:
    crag: Crag
    nr_visits: int

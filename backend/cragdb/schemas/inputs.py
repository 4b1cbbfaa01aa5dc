"""
CragDB Backend — Validated Service Inputs
===========================================

What:  Pydantic models for every write and every structured read the services accept.
How:   GraphQL resolvers build these from their input objects; pydantic rejects
       malformed input before anything touches the database.
Who:   Consumed by services/*; produced by graphql/schema.py and tests.

Update inputs:
    Only the fields a caller actually sent are applied (`changes()` uses
    `exclude_unset`), so an update never resets a column the caller did not
    mention. `cascade_publish_status` is a request flag, not a column.

Find inputs:
    `to_filters()` turns the optional fields into the structured filter
    variants of schemas/filters.py, skipping everything left unset.
"""

import datetime
import uuid
from typing import Any, ClassVar, Dict, FrozenSet, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator
from typing_extensions import Annotated

from cragdb.models.enums import (
    ActivityType,
    AscentType,
    CommentType,
    CragType,
    PublishStatus,
    PublishType,
)
from cragdb.schemas.filters import (
    ByArea,
    ByAreaSlug,
    ById,
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
    Filters,
)

_REQUEST_FLAGS = {"id", "cascade_publish_status"}


class UpdateInput(BaseModel):
    """Base for partial updates: `id` selects the row, the rest is optional."""

    id: uuid.UUID

    # Columns an explicit null may clear; a null for any other field is ignored
    clearable: ClassVar[FrozenSet[str]] = frozenset()

    def changes(self) -> Dict[str, Any]:
        """Fields the caller explicitly set, excluding request-only flags."""
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True, exclude=_REQUEST_FLAGS).items()
            if value is not None or field in self.clearable
        }


def _strip_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name must not be blank")
    return v


Name = Annotated[str, AfterValidator(_strip_name)]


# ══════════════════════════════════════════════════════════════════════════
# Crags
# ══════════════════════════════════════════════════════════════════════════


class CreateCragInput(BaseModel):
    name: Name = Field(min_length=1, max_length=255)
    country_id: uuid.UUID
    type: CragType = CragType.SPORT
    is_hidden: bool = False
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)
    description: Optional[str] = None
    area_id: Optional[uuid.UUID] = None
    peak_id: Optional[uuid.UUID] = None
    publish_status: PublishStatus = PublishStatus.DRAFT


class UpdateCragInput(UpdateInput):
    clearable = frozenset({"lat", "lon", "description", "area_id", "peak_id"})

    name: Optional[Name] = Field(default=None, min_length=1, max_length=255)
    type: Optional[CragType] = None
    is_hidden: Optional[bool] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)
    description: Optional[str] = None
    country_id: Optional[uuid.UUID] = None
    area_id: Optional[uuid.UUID] = None
    peak_id: Optional[uuid.UUID] = None
    publish_status: Optional[PublishStatus] = None
    cascade_publish_status: bool = False


class FindCragsInput(BaseModel):
    id: Optional[uuid.UUID] = None
    slug: Optional[str] = None
    country_id: Optional[uuid.UUID] = None
    area_id: Optional[uuid.UUID] = None
    area_slug: Optional[str] = None
    peak_id: Optional[uuid.UUID] = None
    type: Optional[CragType] = None
    route_type_id: Optional[str] = None

    def to_filters(self) -> Filters:
        filters = []
        if self.id is not None:
            filters.append(ById(self.id))
        if self.slug is not None:
            filters.append(BySlug(self.slug))
        if self.country_id is not None:
            filters.append(ByCountry(self.country_id))
        if self.area_id is not None:
            filters.append(ByArea(self.area_id))
        if self.area_slug is not None:
            filters.append(ByAreaSlug(self.area_slug))
        if self.peak_id is not None:
            filters.append(ByPeak(self.peak_id))
        if self.type is not None:
            filters.append(ByCragType(self.type))
        if self.route_type_id is not None:
            filters.append(ByRouteType(self.route_type_id))
        return tuple(filters)


# ══════════════════════════════════════════════════════════════════════════
# Sectors
# ══════════════════════════════════════════════════════════════════════════


class CreateSectorInput(BaseModel):
    crag_id: uuid.UUID
    name: Name = Field(min_length=1, max_length=255)
    label: str = Field(default="", max_length=50)
    # Unset: appended after the last sector of the crag
    position: Optional[int] = Field(default=None, ge=0)
    publish_status: PublishStatus = PublishStatus.DRAFT


class UpdateSectorInput(UpdateInput):
    name: Optional[Name] = Field(default=None, min_length=1, max_length=255)
    label: Optional[str] = Field(default=None, max_length=50)
    position: Optional[int] = Field(default=None, ge=0)
    publish_status: Optional[PublishStatus] = None
    cascade_publish_status: bool = False


class FindSectorsInput(BaseModel):
    id: Optional[uuid.UUID] = None
    crag_id: Optional[uuid.UUID] = None

    def to_filters(self) -> Filters:
        filters = []
        if self.id is not None:
            filters.append(ById(self.id))
        if self.crag_id is not None:
            filters.append(ByCrag(self.crag_id))
        return tuple(filters)


# ══════════════════════════════════════════════════════════════════════════
# Routes
# ══════════════════════════════════════════════════════════════════════════


class CreateRouteInput(BaseModel):
    sector_id: uuid.UUID
    name: Name = Field(min_length=1, max_length=255)
    route_type_id: str = Field(default="sport", max_length=50)
    difficulty: Optional[float] = Field(default=None, ge=0)
    # Grade proposed by the author; stored as the route's base difficulty vote
    base_difficulty: Optional[float] = Field(default=None, ge=0)
    length: Optional[int] = Field(default=None, ge=0)
    author: Optional[str] = Field(default=None, max_length=255)
    # Unset: appended after the last route of the sector
    position: Optional[int] = Field(default=None, ge=0)
    is_project: bool = False
    description: Optional[str] = None
    publish_status: PublishStatus = PublishStatus.DRAFT


class UpdateRouteInput(UpdateInput):
    clearable = frozenset({"difficulty", "length", "author", "description"})

    name: Optional[Name] = Field(default=None, min_length=1, max_length=255)
    route_type_id: Optional[str] = Field(default=None, max_length=50)
    difficulty: Optional[float] = Field(default=None, ge=0)
    length: Optional[int] = Field(default=None, ge=0)
    author: Optional[str] = Field(default=None, max_length=255)
    position: Optional[int] = Field(default=None, ge=0)
    is_project: Optional[bool] = None
    description: Optional[str] = None
    publish_status: Optional[PublishStatus] = None


class FindRoutesInput(BaseModel):
    id: Optional[uuid.UUID] = None
    sector_id: Optional[uuid.UUID] = None
    crag_id: Optional[uuid.UUID] = None
    route_type_id: Optional[str] = None

    def to_filters(self) -> Filters:
        filters = []
        if self.id is not None:
            filters.append(ById(self.id))
        if self.sector_id is not None:
            filters.append(BySector(self.sector_id))
        if self.crag_id is not None:
            filters.append(ByCrag(self.crag_id))
        if self.route_type_id is not None:
            filters.append(ByRouteType(self.route_type_id))
        return tuple(filters)


# ══════════════════════════════════════════════════════════════════════════
# Countries
# ══════════════════════════════════════════════════════════════════════════


class CreateCountryInput(BaseModel):
    name: Name = Field(min_length=1, max_length=100)
    code: str = Field(min_length=2, max_length=2)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class UpdateCountryInput(UpdateInput):
    name: Optional[Name] = Field(default=None, min_length=1, max_length=100)
    code: Optional[str] = Field(default=None, min_length=2, max_length=2)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class FindCountriesInput(BaseModel):
    order_by: Literal["name", "code", "nr_crags"] = "name"
    direction: Literal["asc", "desc"] = "asc"
    has_crags: Optional[bool] = None
    has_peaks: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Comments
# ══════════════════════════════════════════════════════════════════════════


class CreateCommentInput(BaseModel):
    type: CommentType = CommentType.COMMENT
    content: str = Field(min_length=1)
    crag_id: Optional[uuid.UUID] = None
    route_id: Optional[uuid.UUID] = None
    ice_fall_id: Optional[uuid.UUID] = None
    exposed_until: Optional[datetime.date] = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "CreateCommentInput":
        targets = [t for t in (self.crag_id, self.route_id, self.ice_fall_id) if t]
        if len(targets) != 1:
            raise ValueError("a comment needs exactly one of crag_id, route_id, ice_fall_id")
        return self


class UpdateCommentInput(UpdateInput):
    clearable = frozenset({"exposed_until"})

    content: Optional[str] = Field(default=None, min_length=1)
    exposed_until: Optional[datetime.date] = None


class FindCommentsInput(BaseModel):
    route_id: Optional[uuid.UUID] = None
    route_ids: Optional[List[uuid.UUID]] = None
    crag_id: Optional[uuid.UUID] = None
    type: Optional[CommentType] = None

    def to_filters(self) -> Filters:
        filters = []
        if self.route_id is not None:
            filters.append(ByRoute(self.route_id))
        if self.route_ids is not None:
            filters.append(ByRoutes(tuple(self.route_ids)))
        if self.crag_id is not None:
            filters.append(ByCrag(self.crag_id))
        if self.type is not None:
            filters.append(ByCommentType(self.type))
        return tuple(filters)


# ══════════════════════════════════════════════════════════════════════════
# Activities
# ══════════════════════════════════════════════════════════════════════════


class ActivityRouteInput(BaseModel):
    route_id: uuid.UUID
    ascent_type: AscentType
    publish: PublishType = PublishType.PUBLIC
    notes: Optional[str] = None
    # Only stored for qualifying ascents (redpoint, flash, onsight, repeat)
    vote_difficulty: Optional[float] = Field(default=None, ge=0)


class CreateActivityInput(BaseModel):
    type: ActivityType = ActivityType.CRAG
    name: Name = Field(min_length=1, max_length=255)
    date: datetime.date
    crag_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    routes: List[ActivityRouteInput] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Clubs
# ══════════════════════════════════════════════════════════════════════════


class CreateClubMemberInput(BaseModel):
    club_id: uuid.UUID
    user_id: uuid.UUID
    admin: bool = False


class CreateClubMemberByEmailInput(BaseModel):
    club_id: uuid.UUID
    email: str = Field(min_length=3, max_length=255)
    admin: bool = False

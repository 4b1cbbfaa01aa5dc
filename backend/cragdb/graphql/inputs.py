"""
CragDB Backend — GraphQL Input Types
======================================

What:  The input side of the schema. Every Strawberry input mirrors a pydantic
       model in schemas/inputs.py.
How:   Fields a client leaves out stay UNSET; `to_model()` drops them before
       validating, so "not sent" and "sent as null" remain distinguishable
       for partial updates. All validation lives in the pydantic models.
"""

import dataclasses
import datetime
import uuid
from typing import Any, List, Optional, Type, TypeVar

import strawberry
from pydantic import BaseModel

from cragdb.exceptions import ValidationError
from cragdb.models.enums import (
    ActivityType,
    AscentType,
    CommentType,
    CragType,
    PublishStatus,
    PublishType,
)

M = TypeVar("M", bound=BaseModel)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: _plain(getattr(value, field.name))
            for field in dataclasses.fields(value)
            if getattr(value, field.name) is not strawberry.UNSET
        }
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def to_model(model: Type[M], data: Any) -> M:
    """Validate a Strawberry input (or None) into the service-level pydantic model."""
    return model.model_validate(_plain(data) if data is not None else {})


def parse_id(value: strawberry.ID, field: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(message=f"'{value}' is not a valid id", field=field) from e


# ── Crags, sectors, routes ────────────────────────────────────────────────


@strawberry.input
class FindCragsInput:
    id: Optional[strawberry.ID] = strawberry.UNSET
    slug: Optional[str] = strawberry.UNSET
    country_id: Optional[strawberry.ID] = strawberry.UNSET
    area_id: Optional[strawberry.ID] = strawberry.UNSET
    area_slug: Optional[str] = strawberry.UNSET
    peak_id: Optional[strawberry.ID] = strawberry.UNSET
    type: Optional[CragType] = strawberry.UNSET
    route_type_id: Optional[str] = strawberry.UNSET


@strawberry.input
class CreateCragInput:
    name: str
    country_id: strawberry.ID
    type: Optional[CragType] = strawberry.UNSET
    is_hidden: Optional[bool] = strawberry.UNSET
    lat: Optional[float] = strawberry.UNSET
    lon: Optional[float] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    area_id: Optional[strawberry.ID] = strawberry.UNSET
    peak_id: Optional[strawberry.ID] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET


@strawberry.input
class UpdateCragInput:
    id: strawberry.ID
    name: Optional[str] = strawberry.UNSET
    type: Optional[CragType] = strawberry.UNSET
    is_hidden: Optional[bool] = strawberry.UNSET
    lat: Optional[float] = strawberry.UNSET
    lon: Optional[float] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    country_id: Optional[strawberry.ID] = strawberry.UNSET
    area_id: Optional[strawberry.ID] = strawberry.UNSET
    peak_id: Optional[strawberry.ID] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET
    cascade_publish_status: Optional[bool] = strawberry.UNSET


@strawberry.input
class FindSectorsInput:
    id: Optional[strawberry.ID] = strawberry.UNSET
    crag_id: Optional[strawberry.ID] = strawberry.UNSET


@strawberry.input
class CreateSectorInput:
    crag_id: strawberry.ID
    name: str
    label: Optional[str] = strawberry.UNSET
    position: Optional[int] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET


@strawberry.input
class UpdateSectorInput:
    id: strawberry.ID
    name: Optional[str] = strawberry.UNSET
    label: Optional[str] = strawberry.UNSET
    position: Optional[int] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET
    cascade_publish_status: Optional[bool] = strawberry.UNSET


@strawberry.input
class FindRoutesInput:
    id: Optional[strawberry.ID] = strawberry.UNSET
    sector_id: Optional[strawberry.ID] = strawberry.UNSET
    crag_id: Optional[strawberry.ID] = strawberry.UNSET
    route_type_id: Optional[str] = strawberry.UNSET


@strawberry.input
class CreateRouteInput:
    sector_id: strawberry.ID
    name: str
    route_type_id: Optional[str] = strawberry.UNSET
    difficulty: Optional[float] = strawberry.UNSET
    base_difficulty: Optional[float] = strawberry.UNSET
    length: Optional[int] = strawberry.UNSET
    author: Optional[str] = strawberry.UNSET
    position: Optional[int] = strawberry.UNSET
    is_project: Optional[bool] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET


@strawberry.input
class UpdateRouteInput:
    id: strawberry.ID
    name: Optional[str] = strawberry.UNSET
    route_type_id: Optional[str] = strawberry.UNSET
    difficulty: Optional[float] = strawberry.UNSET
    length: Optional[int] = strawberry.UNSET
    author: Optional[str] = strawberry.UNSET
    position: Optional[int] = strawberry.UNSET
    is_project: Optional[bool] = strawberry.UNSET
    description: Optional[str] = strawberry.UNSET
    publish_status: Optional[PublishStatus] = strawberry.UNSET


# ── Countries ─────────────────────────────────────────────────────────────


@strawberry.input
class FindCountriesInput:
    order_by: Optional[str] = strawberry.UNSET
    direction: Optional[str] = strawberry.UNSET
    has_crags: Optional[bool] = strawberry.UNSET
    has_peaks: Optional[bool] = strawberry.UNSET


@strawberry.input
class CreateCountryInput:
    name: str
    code: str


@strawberry.input
class UpdateCountryInput:
    id: strawberry.ID
    name: Optional[str] = strawberry.UNSET
    code: Optional[str] = strawberry.UNSET


# ── Comments ──────────────────────────────────────────────────────────────


@strawberry.input
class FindCommentsInput:
    route_id: Optional[strawberry.ID] = strawberry.UNSET
    route_ids: Optional[List[strawberry.ID]] = strawberry.UNSET
    crag_id: Optional[strawberry.ID] = strawberry.UNSET
    type: Optional[CommentType] = strawberry.UNSET


@strawberry.input
class CreateCommentInput:
    content: str
    type: Optional[CommentType] = strawberry.UNSET
    crag_id: Optional[strawberry.ID] = strawberry.UNSET
    route_id: Optional[strawberry.ID] = strawberry.UNSET
    ice_fall_id: Optional[strawberry.ID] = strawberry.UNSET
    exposed_until: Optional[datetime.date] = strawberry.UNSET


@strawberry.input
class UpdateCommentInput:
    id: strawberry.ID
    content: Optional[str] = strawberry.UNSET
    exposed_until: Optional[datetime.date] = strawberry.UNSET


# ── Activities & clubs ────────────────────────────────────────────────────


@strawberry.input
class ActivityRouteInput:
    route_id: strawberry.ID
    ascent_type: AscentType
    publish: Optional[PublishType] = strawberry.UNSET
    notes: Optional[str] = strawberry.UNSET
    vote_difficulty: Optional[float] = strawberry.UNSET


@strawberry.input
class CreateActivityInput:
    name: str
    date: datetime.date
    type: Optional[ActivityType] = strawberry.UNSET
    crag_id: Optional[strawberry.ID] = strawberry.UNSET
    notes: Optional[str] = strawberry.UNSET
    routes: Optional[List[ActivityRouteInput]] = strawberry.UNSET


@strawberry.input
class CreateClubMemberInput:
    club_id: strawberry.ID
    user_id: strawberry.ID
    admin: Optional[bool] = strawberry.UNSET


@strawberry.input
class CreateClubMemberByEmailInput:
    club_id: strawberry.ID
    email: str
    admin: Optional[bool] = strawberry.UNSET

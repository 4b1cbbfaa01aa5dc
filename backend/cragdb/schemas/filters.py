"""
CragDB Backend — Query Filter Variants
========================================

What:  One small immutable type per supported read predicate.
How:   Find* inputs (schemas/inputs.py) turn their optional fields into a
       tuple of these; services/queries.py maps every variant to exactly one
       SQL condition. Absent filters never make it into the tuple, so they
       never reach the query.

Variants are hashable; `filter_key()` gives the stable description the query
cache uses to fingerprint a read.
"""

import dataclasses
import uuid
from typing import Any, Dict, Tuple, Union

from cragdb.models.enums import CommentType, CragType


@dataclasses.dataclass(frozen=True)
class ById:
    id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByIds:
    ids: Tuple[uuid.UUID, ...]


@dataclasses.dataclass(frozen=True)
class BySlug:
    slug: str


@dataclasses.dataclass(frozen=True)
class ByCountry:
    country_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByArea:
    area_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByAreaSlug:
    area_slug: str


@dataclasses.dataclass(frozen=True)
class ByPeak:
    peak_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByCragType:
    type: CragType


@dataclasses.dataclass(frozen=True)
class ByRouteType:
    route_type_id: str


@dataclasses.dataclass(frozen=True)
class ByCrag:
    crag_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class BySector:
    sector_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByRoute:
    route_id: uuid.UUID


@dataclasses.dataclass(frozen=True)
class ByRoutes:
    route_ids: Tuple[uuid.UUID, ...]


@dataclasses.dataclass(frozen=True)
class ByCommentType:
    type: CommentType


Filter = Union[
    ById,
    ByIds,
    BySlug,
    ByCountry,
    ByArea,
    ByAreaSlug,
    ByPeak,
    ByCragType,
    ByRouteType,
    ByCrag,
    BySector,
    ByRoute,
    ByRoutes,
    ByCommentType,
]

Filters = Tuple[Filter, ...]


def filter_key(f: Filter) -> Dict[str, Any]:
    """JSON-friendly, order-independent description of one filter variant."""
    values = {}
    for field in dataclasses.fields(f):
        value = getattr(f, field.name)
        if isinstance(value, tuple):
            value = sorted(str(v) for v in value)
        elif hasattr(value, "value"):
            value = value.value
        else:
            value = str(value)
        values[field.name] = value
    return {"variant": type(f).__name__, **values}

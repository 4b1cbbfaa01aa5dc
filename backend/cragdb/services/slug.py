"""
CragDB Backend — Slug Generator
=================================

What:  URL-safe, scope-unique identifiers derived from entity names.
How:   `slugify()` normalizes the name into a lower-case ASCII token;
       `unique_slug()` checks the table for `slug`, `slug-1`, `slug-2`, ...
       and returns the first candidate nobody else in the scope uses.

Scopes:
    Crag, country, ice fall: whole table.
    Route: one crag (pass `Route.crag_id == crag_id` as scope).

The search stops after `settings.slug_max_suffix` candidates and raises
ConflictError; a correct lookup query never gets there.
"""

import logging
import re
import unicodedata
import uuid
from typing import Iterable, Optional, Type

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from cragdb.config import settings
from cragdb.database import Base
from cragdb.exceptions import ConflictError

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Create URL friendly string ("Šmarna Gora" -> "smarna-gora")"""
    ascii_name = (
        unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    )
    return _NON_ALNUM.sub("-", ascii_name.strip().lower()).strip("-")


async def unique_slug(
    db: AsyncSession,
    model: Type[Base],
    name: str,
    scope: Iterable[ColumnElement] = (),
    exclude_id: Optional[uuid.UUID] = None,
) -> str:
    """
    First free slug for `name` among rows of `model` matching `scope`.

    Args:
        db:         Session of the surrounding transaction (pending rows are
                    flushed by autoflush before each lookup).
        model:      Mapped class with `slug` and `id` columns.
        name:       Human readable name to derive the slug from.
        scope:      Extra conditions bounding uniqueness (e.g. same crag).
        exclude_id: The entity's own id when renaming, so it never collides
                    with itself.

    Raises:
        ConflictError: no free candidate up to `settings.slug_max_suffix`.
    """
    base = slugify(name) or model.__tablename__.replace("_", "-")
    conditions = list(scope)
    if exclude_id is not None:
        conditions.append(model.id != exclude_id)

    for counter in range(settings.slug_max_suffix + 1):
        candidate = base if counter == 0 else f"{base}-{counter}"
        taken = await db.scalar(
            select(exists().where(model.slug == candidate, *conditions))
        )
        if not taken:
            return candidate

    logger.error(
        "Slug search for %s '%s' exhausted %d suffixes",
        model.__tablename__,
        base,
        settings.slug_max_suffix,
    )
    raise ConflictError(
        message=f"Could not generate a unique slug for '{name}'",
        context={"table": model.__tablename__, "slug": base},
    )

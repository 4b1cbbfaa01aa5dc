"""
CragDB Backend — Country Service
==================================

What:  CRUD for countries, the root of the geography every crag hangs off.
How:   Plain queries; writes go through `atomic()` like every other write so
       cached aggregates reading `country` are invalidated on commit.
Who:   Called by GraphQL resolvers (graphql/schema.py).
"""

import logging
import uuid
from typing import List

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from cragdb.exceptions import NotFoundError
from cragdb.models.geography import Country, Peak
from cragdb.schemas.inputs import CreateCountryInput, FindCountriesInput, UpdateCountryInput
from cragdb.services.queries import name_order
from cragdb.services.slug import unique_slug
from cragdb.services.transaction import atomic

logger = logging.getLogger(__name__)


class CountryService:
    async def find(self, db: AsyncSession, params: FindCountriesInput) -> List[Country]:
        """
        Countries ordered by `params.order_by` (name uses the name collation).

        has_crags=True keeps countries with at least one crag; has_peaks
        True/False keeps countries with/without peaks.
        """
        column = getattr(Country, params.order_by)
        order = name_order(column) if params.order_by == "name" else column
        stmt = select(Country).order_by(order.desc() if params.direction == "desc" else order)

        if params.has_crags:
            stmt = stmt.where(Country.nr_crags > 0)

        if params.has_peaks is not None:
            with_peaks = exists().where(Peak.country_id == Country.id)
            stmt = stmt.where(with_peaks if params.has_peaks else ~with_peaks)

        return list((await db.scalars(stmt)).all())

    async def find_by_slug(self, db: AsyncSession, slug: str) -> Country:
        country = await db.scalar(select(Country).where(Country.slug == slug))
        if country is None:
            raise NotFoundError(resource="country", context={"slug": slug})
        return country

    async def find_one_by_id(self, db: AsyncSession, country_id: uuid.UUID) -> Country:
        country = await db.get(Country, country_id)
        if country is None:
            raise NotFoundError(resource="country", resource_id=str(country_id))
        return country

    async def create(self, db: AsyncSession, data: CreateCountryInput) -> Country:
        async with atomic(db, touches=("country",)):
            country = Country(
                name=data.name,
                code=data.code,
                slug=await unique_slug(db, Country, data.name),
                nr_crags=0,
            )
            db.add(country)
            await db.flush()

        logger.info("Country created: %s (%s)", country.code, country.slug)
        return country

    async def update(self, db: AsyncSession, data: UpdateCountryInput) -> Country:
        async with atomic(db, touches=("country",)):
            country = await self.find_one_by_id(db, data.id)
            changes = data.changes()
            for field, value in changes.items():
                setattr(country, field, value)
            if "name" in changes:
                country.slug = await unique_slug(db, Country, country.name, exclude_id=country.id)
            await db.flush()

        logger.info("Country updated: %s (%s)", country.code, ", ".join(sorted(changes)))
        return country

    async def delete(self, db: AsyncSession, country_id: uuid.UUID) -> bool:
        async with atomic(db, touches=("country", "crag")):
            country = await self.find_one_by_id(db, country_id)
            await db.delete(country)
            await db.flush()

        logger.info("Country deleted: %s", country_id)
        return True


# Singleton instance
country_service = CountryService()

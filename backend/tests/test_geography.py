"""
CragDB Backend — Geography Tests
==================================

What we test:
    ✅ Countries: create/rename slugs, ordering, has_crags / has_peaks filters
    ✅ Peaks: by slug, per country and area, crag count hides hidden crags
    ✅ Ice falls follow the publish-status visibility rules
"""

import pytest

from cragdb.exceptions import NotFoundError
from cragdb.models import Country, PublishStatus
from cragdb.schemas.inputs import (
    CreateCountryInput,
    CreateCragInput,
    FindCountriesInput,
    UpdateCountryInput,
)
from cragdb.schemas.viewer import Viewer
from cragdb.services.country_service import country_service
from cragdb.services.crag_service import crag_service
from cragdb.services.geography_service import ice_fall_service, peak_service


class TestCountries:
    def setup_method(self):
        self.service = country_service

    @pytest.mark.asyncio
    async def test_create_slug_and_upper_code(self, db):
        """A new country gets a slug, an upper-case code and no crags."""
        country = await self.service.create(db, CreateCountryInput(name="Slovenija", code="si"))

        assert country.slug == "slovenija"
        assert country.code == "SI"
        assert country.nr_crags == 0

    @pytest.mark.asyncio
    async def test_rename(self, db, factory):
        """Renaming a country should regenerate its slug."""
        country = await factory.country(name="Hrvatska", code="HR")

        await self.service.update(db, UpdateCountryInput(id=country.id, name="Croatia"))

        assert (await factory.get(Country, country.id)).slug == "croatia"

    @pytest.mark.asyncio
    async def test_ordering(self, db, factory):
        """Countries sort by name case-insensitively, or by the requested column."""
        await factory.country(name="italy", code="IT")
        await factory.country(name="Austria", code="AT")
        await factory.country(name="Slovenia", code="SI")

        by_name = await self.service.find(db, FindCountriesInput())
        by_code_desc = await self.service.find(
            db, FindCountriesInput(order_by="code", direction="desc")
        )

        assert [c.name for c in by_name] == ["Austria", "italy", "Slovenia"]
        assert [c.code for c in by_code_desc] == ["SI", "IT", "AT"]

    @pytest.mark.asyncio
    async def test_has_crags_and_has_peaks(self, db, factory):
        """has_crags and has_peaks should filter countries both ways."""
        climbing = await factory.country(name="Climbing", code="CL")
        alpine = await factory.country(name="Alpine", code="AL")
        await factory.country(name="Flat", code="FL")
        await crag_service.create(db, CreateCragInput(name="Osp", country_id=climbing.id), None)
        await factory.peak(alpine, "Triglav")

        with_crags = await self.service.find(db, FindCountriesInput(has_crags=True))
        with_peaks = await self.service.find(db, FindCountriesInput(has_peaks=True))
        without_peaks = await self.service.find(db, FindCountriesInput(has_peaks=False))

        assert [c.name for c in with_crags] == ["Climbing"]
        assert [c.name for c in with_peaks] == ["Alpine"]
        assert [c.name for c in without_peaks] == ["Climbing", "Flat"]

    @pytest.mark.asyncio
    async def test_unknown_slug(self, db):
        """An unknown country slug should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await self.service.find_by_slug(db, "atlantis")


class TestPeaks:
    @pytest.mark.asyncio
    async def test_get_by_slug(self, db, factory):
        """Peaks resolve by slug; an unknown one raises NotFoundError."""
        await factory.peak(await factory.country(), "Triglav")

        assert (await peak_service.get_by_slug(db, "triglav")).name == "Triglav"

        with pytest.raises(NotFoundError):
            await peak_service.get_by_slug(db, "k2")

    @pytest.mark.asyncio
    async def test_peaks_of_country_by_area(self, db, factory):
        """Peaks of a country can be narrowed to one area."""
        country = await factory.country()
        julian = await factory.area(country, "Julian Alps")
        await factory.peak(country, "Triglav", julian)
        await factory.peak(country, "Jalovec", julian)
        await factory.peak(country, "Grintovec")

        everything = await peak_service.peaks_of_country(db, country.id)
        in_area = await peak_service.peaks_of_country(db, country.id, area_slug="julian-alps")

        assert [p.name for p in everything] == ["Grintovec", "Jalovec", "Triglav"]
        assert [p.name for p in in_area] == ["Jalovec", "Triglav"]
        assert await peak_service.number_of_peaks(db, country.id) == 3

    @pytest.mark.asyncio
    async def test_number_of_crags_hides_hidden_for_anonymous(self, db, factory):
        """Hidden crags on a peak should only count for signed-in users."""
        user = await factory.user()
        country = await factory.country()
        peak = await factory.peak(country, "Triglav")
        await factory.crag(country, name="North face", peak=peak)
        await factory.crag(country, name="Secret", peak=peak, is_hidden=True)

        assert await peak_service.number_of_crags(db, peak.id, None) == 1
        assert await peak_service.number_of_crags(db, peak.id, Viewer.of(user)) == 2


class TestIceFalls:
    @pytest.mark.asyncio
    async def test_visibility(self, db, factory):
        """Ice falls in review should be visible to admins only."""
        admin = await factory.user(admin=True)
        country = await factory.country()
        await factory.ice_fall(country, "Martuljek")
        await factory.ice_fall(country, "Under review", status=PublishStatus.IN_REVIEW)

        anonymous = await ice_fall_service.ice_falls_of_country(db, country.id, None)
        as_admin = await ice_fall_service.ice_falls_of_country(db, country.id, Viewer.of(admin))

        assert [i.name for i in anonymous] == ["Martuljek"]
        assert [i.name for i in as_admin] == ["Martuljek", "Under review"]
        assert await ice_fall_service.number_of_ice_falls(db, country.id, None) == 1

"""
CragDB Backend — Slug Generator Tests
=======================================

What we test:
    ✅ slugify normalizes accents, case, punctuation and whitespace
    ✅ First free candidate: base, then -1, -2, ...
    ✅ Route slugs are scoped to one crag
    ✅ Renaming never collides with the entity's own slug
    ✅ The suffix search is capped (ConflictError instead of looping forever)
"""

from unittest.mock import patch

import pytest

from cragdb.config import settings
from cragdb.exceptions import ConflictError
from cragdb.models import Crag, Route
from cragdb.services.slug import slugify, unique_slug


class TestSlugify:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Mišja peč", "misja-pec"),
            ("  Osp  ", "osp"),
            ("Črni Kal / Sektor A", "crni-kal-sektor-a"),
            ("Bitchy Crack!!", "bitchy-crack"),
            ("Ćićarija 2", "cicarija-2"),
        ],
    )
    def test_normalizes_name(self, name, expected):
        """slugify should transliterate, lower-case and hyphenate."""
        assert slugify(name) == expected

    def test_only_symbols_gives_empty_token(self):
        """A name of symbols only should give an empty token."""
        assert slugify("!!!") == ""


class TestUniqueSlug:
    @pytest.mark.asyncio
    async def test_free_name_keeps_base(self, db, factory):
        """A free name should keep its base slug."""
        await factory.country()
        assert await unique_slug(db, Crag, "Osp") == "osp"

    @pytest.mark.asyncio
    async def test_taken_name_gets_next_suffix(self, db, factory):
        """A taken name should get the next free suffix."""
        country = await factory.country()
        await factory.crag(country, name="Osp")
        assert await unique_slug(db, Crag, "Osp") == "osp-1"

        await factory.crag(country, name="Osp 1")  # slug osp-1
        assert await unique_slug(db, Crag, "Osp") == "osp-2"

    @pytest.mark.asyncio
    async def test_blank_token_falls_back_to_table_name(self, db, factory):
        """A blank token should fall back to the table name."""
        assert await unique_slug(db, Crag, "???") == "crag"

    @pytest.mark.asyncio
    async def test_route_slug_is_scoped_to_crag(self, db, factory):
        """Route slugs should only be unique within their crag."""
        country = await factory.country()
        osp = await factory.crag(country, name="Osp")
        misja = await factory.crag(country, name="Mišja peč")
        await factory.route(await factory.sector(osp, 1), 1, name="Bitchy Crack")

        in_osp = await unique_slug(db, Route, "Bitchy Crack", scope=(Route.crag_id == osp.id,))
        in_misja = await unique_slug(
            db, Route, "Bitchy Crack", scope=(Route.crag_id == misja.id,)
        )

        assert in_osp == "bitchy-crack-1"
        assert in_misja == "bitchy-crack"

    @pytest.mark.asyncio
    async def test_exclude_id_ignores_own_row(self, db, factory):
        """A row's own slug should not count as taken."""
        country = await factory.country()
        crag = await factory.crag(country, name="Osp")
        assert await unique_slug(db, Crag, "Osp", exclude_id=crag.id) == "osp"

    @pytest.mark.asyncio
    async def test_suffix_search_is_capped(self, db, factory):
        """Running out of suffixes should raise ConflictError."""
        country = await factory.country()
        await factory.crag(country, name="Osp")
        await factory.crag(country, name="Osp 1")

        with patch.object(settings, "slug_max_suffix", 1):
            with pytest.raises(ConflictError) as exc_info:
                await unique_slug(db, Crag, "Osp")

        assert exc_info.value.context["slug"] == "osp"

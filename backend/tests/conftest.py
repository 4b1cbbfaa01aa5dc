"""
CragDB Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file database built from the ORM
       metadata (foreign keys on, vote cleanup trigger attached by the DDL
       events in cragdb.models.activity). Services run against it for real;
       only forced failures are mocked.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine:           async engine on a fresh database file
    │   └── session_factory
    │       ├── db:       session handed to the service under test
    │       ├── factory:  persists fixture rows (each in its own session)
    │       └── test_client: HTTPX AsyncClient, get_db_session overridden
    └── clear_query_cache (autouse): no cached aggregate leaks between tests

Checking state after a rollback:
    ORM instances of the failed session are expired; read the database
    through `factory.get()` (fresh session) instead.
"""

import itertools
import os
import tempfile
import uuid
from typing import AsyncGenerator, Optional

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run BEFORE any cragdb import: settings and the engine are built at import
_TMP_DIR = tempfile.mkdtemp(prefix="cragdb_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/app.db"
os.environ["QUERY_CACHE_BACKEND"] = "memory"
os.environ["CREATE_RETRY_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import cragdb.models  # noqa: F401  (registers every table)
from cragdb.database import Base, enable_sqlite_foreign_keys, get_db_session
from cragdb.models import (
    Area,
    Club,
    ClubMember,
    Country,
    Crag,
    IceFall,
    Peak,
    PublishStatus,
    Route,
    Sector,
    User,
)
from cragdb.models.user import ADMIN_ROLE
from cragdb.services.query_cache import query_cache
from cragdb.services.slug import slugify


# ══════════════════════════════════════════════════════════════════════════
# Fixture Row Factory
# ══════════════════════════════════════════════════════════════════════════


class Factory:
    """
    Persists fixture rows, one committed session per row.

    Defaults produce published, ownerless entities; pass `status=` and
    `owner=` to build visibility and cascade scenarios.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._seq = itertools.count(1)

    async def _save(self, entity):
        async with self.session_factory() as session:
            session.add(entity)
            await session.commit()
        return entity

    async def get(self, model, entity_id: uuid.UUID):
        """Fresh read, independent of any session a test has used."""
        async with self.session_factory() as session:
            return await session.get(model, entity_id)

    async def user(self, admin: bool = False, email: Optional[str] = None) -> User:
        n = next(self._seq)
        return await self._save(
            User(
                email=email or f"climber{n}@example.com",
                first_name="Climber",
                last_name=str(n),
                roles=[ADMIN_ROLE] if admin else [],
            )
        )

    async def country(self, name: Optional[str] = None, code: Optional[str] = None) -> Country:
        n = next(self._seq)
        name = name or f"Country {n}"
        return await self._save(
            Country(name=name, code=code or f"{n:02d}"[-2:], slug=slugify(name), nr_crags=0)
        )

    async def area(self, country: Country, name: str) -> Area:
        return await self._save(Area(country_id=country.id, name=name, slug=slugify(name)))

    async def peak(self, country: Country, name: str, area: Optional[Area] = None) -> Peak:
        return await self._save(
            Peak(
                country_id=country.id,
                area_id=area.id if area else None,
                name=name,
                slug=slugify(name),
            )
        )

    async def crag(
        self,
        country: Country,
        name: Optional[str] = None,
        status: PublishStatus = PublishStatus.PUBLISHED,
        owner: Optional[User] = None,
        is_hidden: bool = False,
        peak: Optional[Peak] = None,
    ) -> Crag:
        name = name or f"Crag {next(self._seq)}"
        return await self._save(
            Crag(
                name=name,
                slug=slugify(name),
                country_id=country.id,
                peak_id=peak.id if peak else None,
                is_hidden=is_hidden,
                publish_status=status,
                user_id=owner.id if owner else None,
            )
        )

    async def sector(
        self,
        crag: Crag,
        position: int,
        name: Optional[str] = None,
        status: PublishStatus = PublishStatus.PUBLISHED,
        owner: Optional[User] = None,
    ) -> Sector:
        return await self._save(
            Sector(
                crag_id=crag.id,
                name=name or f"Sector {position}",
                position=position,
                publish_status=status,
                user_id=owner.id if owner else None,
            )
        )

    async def route(
        self,
        sector: Sector,
        position: int,
        name: Optional[str] = None,
        status: PublishStatus = PublishStatus.PUBLISHED,
        owner: Optional[User] = None,
        route_type_id: str = "sport",
    ) -> Route:
        name = name or f"Route {next(self._seq)}"
        return await self._save(
            Route(
                name=name,
                slug=slugify(name),
                route_type_id=route_type_id,
                position=position,
                crag_id=sector.crag_id,
                sector_id=sector.id,
                publish_status=status,
                user_id=owner.id if owner else None,
            )
        )

    async def ice_fall(
        self, country: Country, name: str, status: PublishStatus = PublishStatus.PUBLISHED
    ) -> IceFall:
        return await self._save(
            IceFall(country_id=country.id, name=name, slug=slugify(name), publish_status=status)
        )

    async def club(self, name: str, admin: Optional[User] = None) -> Club:
        club = await self._save(Club(name=name, slug=slugify(name)))
        if admin is not None:
            await self._save(ClubMember(club_id=club.id, user_id=admin.id, admin=True))
        return club


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine on an empty database file with the full schema."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cragdb.db'}")
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """The session passed to the service under test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(session_factory) -> Factory:
    return Factory(session_factory)


@pytest.fixture(autouse=True)
def clear_query_cache():
    query_cache.clear()
    yield
    query_cache.clear()


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient talking to the FastAPI app in-process.
    How:     ASGITransport routes requests directly to the app; the request
             session dependency is pointed at the test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from cragdb.main import app

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

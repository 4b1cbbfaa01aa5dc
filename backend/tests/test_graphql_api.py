"""
CragDB Backend — HTTP & GraphQL API Tests
===========================================

What:  Requests against the FastAPI app in-process (ASGITransport), with the
       database session pointed at the test database.

What we test:
    ✅ /health reports database and query cache state
    ✅ X-Request-ID is echoed (or generated)
    ✅ Mutations: anonymous callers are refused, forwarded admins succeed
    ✅ Error codes: NOT_FOUND from services, VALIDATION_ERROR from inputs
    ✅ Listings carry routeCount; route counters resolve through loaders
"""

import datetime

import pytest

from cragdb.models.enums import AscentType
from cragdb.schemas.inputs import ActivityRouteInput, CreateActivityInput
from cragdb.schemas.viewer import Viewer
from cragdb.services.activity_service import activity_service

CREATE_CRAG = """
mutation CreateCrag($input: CreateCragInput!) {
    createCrag(input: $input) { id name slug publishStatus countryId }
}
"""


async def graphql(client, query, variables=None, user=None):
    headers = {"X-Authenticated-User": str(user.id)} if user is not None else {}
    response = await client.post(
        "/graphql", json={"query": query, "variables": variables or {}}, headers=headers
    )
    assert response.status_code == 200
    return response.json()


def error_codes(body):
    return [error["extensions"]["code"] for error in body.get("errors", [])]


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        """Health check should report the database and query cache backend."""
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["query_cache"] == "memory"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        """An incoming X-Request-ID should be echoed back."""
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        """A missing X-Request-ID should be generated."""
        response = await test_client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8


class TestMutations:
    @pytest.mark.asyncio
    async def test_anonymous_create_forbidden(self, test_client, factory):
        """Anonymous createCrag should fail with FORBIDDEN."""
        country = await factory.country()

        body = await graphql(
            test_client, CREATE_CRAG, {"input": {"name": "Osp", "countryId": str(country.id)}}
        )

        assert body["data"] is None
        assert error_codes(body) == ["FORBIDDEN"]

    @pytest.mark.asyncio
    async def test_non_admin_create_forbidden(self, test_client, factory):
        """createCrag by a regular user should fail with FORBIDDEN."""
        user = await factory.user()
        country = await factory.country()

        body = await graphql(
            test_client,
            CREATE_CRAG,
            {"input": {"name": "Osp", "countryId": str(country.id)}},
            user=user,
        )

        assert error_codes(body) == ["FORBIDDEN"]

    @pytest.mark.asyncio
    async def test_admin_creates_crag(self, test_client, factory):
        """An admin should create a draft crag with a transliterated slug."""
        admin = await factory.user(admin=True)
        country = await factory.country()

        body = await graphql(
            test_client,
            CREATE_CRAG,
            {"input": {"name": "Mišja peč", "countryId": str(country.id)}},
            user=admin,
        )

        assert "errors" not in body
        crag = body["data"]["createCrag"]
        assert crag["slug"] == "misja-pec"
        assert crag["publishStatus"] == "DRAFT"
        assert crag["countryId"] == str(country.id)

    @pytest.mark.asyncio
    async def test_invalid_latitude(self, test_client, factory):
        """An out-of-range latitude should fail with VALIDATION_ERROR."""
        admin = await factory.user(admin=True)
        country = await factory.country()

        body = await graphql(
            test_client,
            CREATE_CRAG,
            {"input": {"name": "Osp", "countryId": str(country.id), "lat": 100}},
            user=admin,
        )

        assert error_codes(body) == ["VALIDATION_ERROR"]
        assert "lat" in body["errors"][0]["message"]

    @pytest.mark.asyncio
    async def test_malformed_user_header_is_anonymous(self, test_client):
        """A malformed user header should be treated as anonymous."""
        response = await test_client.post(
            "/graphql",
            json={"query": "{ me { id } }"},
            headers={"X-Authenticated-User": "not-a-uuid"},
        )

        assert response.json()["data"] == {"me": None}


class TestQueries:
    @pytest.mark.asyncio
    async def test_crags_with_route_count(self, test_client, factory):
        """Crag listings should carry routeCount."""
        country = await factory.country()
        crag = await factory.crag(country, name="Osp")
        sector = await factory.sector(crag, 1)
        await factory.route(sector, 1)
        await factory.route(sector, 2)

        body = await graphql(
            test_client,
            "query($c: ID!) { crags(input: {countryId: $c}) { name routeCount } }",
            {"c": str(country.id)},
        )

        assert body["data"]["crags"] == [{"name": "Osp", "routeCount": 2}]

    @pytest.mark.asyncio
    async def test_crag_not_found(self, test_client):
        """An unknown crag slug should fail with NOT_FOUND."""
        body = await graphql(test_client, '{ crag(input: {slug: "nowhere"}) { id } }')

        assert error_codes(body) == ["NOT_FOUND"]

    @pytest.mark.asyncio
    async def test_route_counters(self, test_client, factory, db):
        """Route tick, try and climber counters should resolve per route."""
        climber = await factory.user()
        crag = await factory.crag(await factory.country(), name="Osp")
        sector = await factory.sector(crag, 1)
        route = await factory.route(sector, 1, name="Babe")
        await factory.route(sector, 2, name="Quiet")
        await activity_service.log_activity(
            db,
            CreateActivityInput(
                name="Osp",
                date=datetime.date(2024, 4, 20),
                routes=[
                    ActivityRouteInput(route_id=route.id, ascent_type=AscentType.ATTEMPT),
                    ActivityRouteInput(route_id=route.id, ascent_type=AscentType.REDPOINT),
                ],
            ),
            Viewer.of(climber),
        )

        body = await graphql(
            test_client,
            "query($s: ID!) { routes(input: {sectorId: $s}) { name nrTicks nrTries nrClimbers } }",
            {"s": str(sector.id)},
        )

        assert body["data"]["routes"] == [
            {"name": "Babe", "nrTicks": 1, "nrTries": 2, "nrClimbers": 1},
            {"name": "Quiet", "nrTicks": 0, "nrTries": 0, "nrClimbers": 0},
        ]

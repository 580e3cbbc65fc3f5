"""
Tests de la API HTTP (aiohttp) con colaboradores en memoria.
"""

import json

import pytest
from aiohttp.test_utils import TestClient, TestServer

from tauschmatch.analysis import ListingDescriptionAnalyzer, PreferenceExtractor
from tauschmatch.api import create_app
from tauschmatch.matching import MatchingEngine

from conftest import (
    FakeListingRepository,
    FakeLLMProvider,
    FakeSavedListingRepository,
    FakeUserRepository,
    make_listing,
    make_user,
)


def build_app(settings, listings=None, users=None, repo_error=None, analyzer_provider=None,
              extractor_provider=None, user_error=None):
    listing_repo = FakeListingRepository(listings, error=repo_error)
    user_repo = FakeUserRepository(users, error=user_error)
    engine = MatchingEngine(
        listing_repo=listing_repo,
        user_repo=user_repo,
        settings=settings,
    )
    saved_repo = FakeSavedListingRepository()
    app = create_app(
        engine=engine,
        user_repo=user_repo,
        listing_repo=listing_repo,
        saved_repo=saved_repo,
        extractor=PreferenceExtractor(extractor_provider, settings),
        analyzer=ListingDescriptionAnalyzer(analyzer_provider),
        settings=settings,
    )
    return app, saved_repo


def user_payload(**overrides) -> dict:
    return make_user(**overrides).model_dump(mode="json", by_alias=True)


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.json() == {"status": "ok"}


class TestFindMatches:
    @pytest.mark.asyncio
    async def test_returns_camel_case_matches(self, settings):
        app, _ = build_app(settings, listings=[make_listing("l1")])
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"user": user_payload(), "limit": 5})
            assert resp.status == 200
            body = await resp.json()

        assert len(body) == 1
        match = body[0]
        assert match["listing"]["id"] == "l1"
        assert match["structuredScore"] == 9
        assert match["semanticScore"] == 1
        assert match["score"] == 6
        assert set(match["reasonBreakdown"]) == {"theirApartment", "yourApartment"}
        assert set(match["reasonBreakdown"]["theirApartment"]) == {"structured", "semantic"}

    @pytest.mark.asyncio
    async def test_resolves_user_id(self, settings):
        app, _ = build_app(settings, listings=[make_listing("l1")], users=[make_user("u1")])
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"userId": "u1"})
            assert resp.status == 200
            assert [m["listing"]["id"] for m in await resp.json()] == ["l1"]

    @pytest.mark.asyncio
    async def test_missing_user(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={})
            assert resp.status == 400
            assert await resp.json() == {"error": "User data is required.", "matches": []}

    @pytest.mark.asyncio
    async def test_unknown_user_id(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"userId": "ghost"})
            assert resp.status == 404
            assert (await resp.json())["error"] == "User not found."

    @pytest.mark.asyncio
    async def test_invalid_user(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"user": {"displayName": "no id"}})
            assert resp.status == 400
            assert (await resp.json())["error"] == "Invalid user data."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", ["many", -3])
    async def test_invalid_limit(self, settings, limit):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"user": user_payload(), "limit": limit})
            assert resp.status == 400
            assert (await resp.json())["error"] == "Invalid limit."

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/find-matches",
                data="{not json",
                headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_storage_failure_is_500(self, settings):
        app, _ = build_app(settings, repo_error=ConnectionError("supabase down"))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"user": user_payload()})
            assert resp.status == 500
            assert await resp.json() == {"error": "Failed to find matches.", "matches": []}

    @pytest.mark.asyncio
    async def test_user_lookup_failure_is_500(self, settings):
        app, _ = build_app(settings, user_error=ConnectionError("supabase down"))
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/find-matches", json={"userId": "u1"})
            assert resp.status == 500
            assert resp.content_type == "application/json"
            body = await resp.json()

        assert body["error"] == "Failed to find matches."
        assert body["matches"] == []


class TestExtractPreferences:
    @pytest.mark.asyncio
    async def test_requires_description(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/extract-preferences", json={"userDescription": "  "})
            assert resp.status == 400
            assert (await resp.json())["error"] == "User description is required"

    @pytest.mark.asyncio
    async def test_returns_preferences(self, settings):
        provider = FakeLLMProvider([json.dumps({"quiet": True, "nearParks": True})])
        app, _ = build_app(settings, extractor_provider=provider)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/extract-preferences",
                json={"userDescription": "Quiet place next to Volkspark Friedrichshain"},
            )
            assert resp.status == 200
            body = await resp.json()

        assert body["quiet"] is True
        assert body["nearParks"] is True
        assert body["preferredDistricts"] == []

    @pytest.mark.asyncio
    async def test_without_llm_returns_defaults(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/extract-preferences", json={"userDescription": "Anything quiet"})
            assert resp.status == 200
            assert (await resp.json())["quiet"] is False


class TestAnalyzeListing:
    @pytest.mark.asyncio
    async def test_analyzes_stored_listing(self, settings):
        provider = FakeLLMProvider([json.dumps({"features": ["balcony"], "neighborhood": "Leafy"})])
        listing = make_listing("l1", description="Altbau mit Balkon")
        app, _ = build_app(settings, listings=[listing], analyzer_provider=provider)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/analyze-listing", json={"listingId": "l1"})
            assert resp.status == 200
            body = await resp.json()

        assert body["features"] == ["balcony"]
        assert body["neighborhood"] == "Leafy"
        assert "Altbau mit Balkon" in provider.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_unknown_listing(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/analyze-listing", json={"listingId": "nope"})
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_listing_without_description(self, settings):
        app, _ = build_app(settings, listings=[make_listing("l1")])
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/analyze-listing", json={"listingId": "l1"})
            assert resp.status == 400
            assert (await resp.json())["error"] == "No description available for analysis"

    @pytest.mark.asyncio
    async def test_requires_description_or_id(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/analyze-listing", json={})
            assert resp.status == 400
            assert (await resp.json())["error"] == "Description is required"


class TestSavedListings:
    @pytest.mark.asyncio
    async def test_save_list_and_unsave(self, settings):
        app, saved_repo = build_app(settings, listings=[make_listing("l1")])
        base = "/api/users/u1/saved-listings"
        async with TestClient(TestServer(app)) as client:
            resp = await client.put(f"{base}/l1")
            assert resp.status == 201
            assert (await resp.json())["listingId"] == "l1"

            # Guardar dos veces no duplica
            await client.put(f"{base}/l1")
            resp = await client.get(base)
            assert [s["listingId"] for s in await resp.json()] == ["l1"]

            resp = await client.get(f"{base}/l1")
            assert await resp.json() == {"saved": True}

            resp = await client.delete(f"{base}/l1")
            assert await resp.json() == {"removed": True}

            resp = await client.get(f"{base}/l1")
            assert await resp.json() == {"saved": False}

        assert saved_repo.saved == {}

    @pytest.mark.asyncio
    async def test_save_with_snapshot(self, settings):
        app, saved_repo = build_app(settings)
        snapshot = make_listing("ext").model_dump(mode="json", by_alias=True)
        async with TestClient(TestServer(app)) as client:
            resp = await client.put("/api/users/u1/saved-listings/ext", json={"listing": snapshot})
            assert resp.status == 201

        assert saved_repo.is_saved("u1", "ext")

    @pytest.mark.asyncio
    async def test_save_unknown_listing(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.put("/api/users/u1/saved-listings/missing")
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_unsave_missing_is_not_an_error(self, settings):
        app, _ = build_app(settings)
        async with TestClient(TestServer(app)) as client:
            resp = await client.delete("/api/users/u1/saved-listings/missing")
            assert resp.status == 200
            assert await resp.json() == {"removed": False}

"""
Tests del extractor de preferencias (dependencia blanda).
"""

import asyncio
import json

import pytest

from tauschmatch.analysis.preference_extractor import PreferenceExtractor, describe_looking_for
from tauschmatch.models import ExtractedPreferences, LookingFor

from conftest import FakeLLMProvider, QuotaExceeded, make_user


class TestDescribeLookingFor:
    def test_synthesises_sentence(self):
        looking_for = LookingFor(
            type="Wohnung",
            min_rooms=2,
            max_cold_rent=1000,
            districts=["Mitte", "Pankow"],
            balcony=True,
        )
        assert describe_looking_for(looking_for) == (
            "Looking for a wohnung, with at least 2 rooms, maximum rent €1000, "
            "in districts: Mitte, Pankow, with balcony or terrace."
        )

    def test_empty(self):
        assert describe_looking_for(LookingFor()) == ""


class TestPreferenceExtractor:
    @pytest.mark.asyncio
    async def test_parses_llm_json(self, settings):
        provider = FakeLLMProvider([
            "```json\n" + json.dumps({
                "quiet": True,
                "nearParks": True,
                "maxRent": 1100,
                "preferredDistricts": ["Neukölln"],
                "lifestyle": ["creative"],
            }) + "\n```"
        ])
        extractor = PreferenceExtractor(provider, settings)

        prefs = await extractor.extract("Quiet place near a park in Neukölln, max 1100")

        assert prefs.quiet is True
        assert prefs.near_parks is True
        assert prefs.max_rent == 1100
        assert prefs.preferred_districts == ["Neukölln"]
        assert len(provider.calls) == 1
        assert "Quiet place near a park" in provider.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        ["this is not json", "[1, 2, 3]", "", QuotaExceeded(), RuntimeError("network down")],
    )
    async def test_any_failure_returns_fallback(self, settings, response):
        extractor = PreferenceExtractor(FakeLLMProvider([response]), settings)
        fallback = ExtractedPreferences(max_rent=900)

        prefs = await extractor.extract("Something quiet", fallback=fallback)

        assert prefs == fallback

    @pytest.mark.asyncio
    async def test_without_provider_returns_default(self, settings):
        prefs = await PreferenceExtractor(None, settings).extract("Something quiet")
        assert prefs == ExtractedPreferences()

    @pytest.mark.asyncio
    async def test_timeout_returns_fallback(self, settings):
        class SlowProvider(FakeLLMProvider):
            async def generate(self, *args, **kwargs):
                await asyncio.sleep(1)
                return await super().generate(*args, **kwargs)

        fast_settings = settings.model_copy(update={"llm_timeout_seconds": 0.01})
        prefs = await PreferenceExtractor(SlowProvider(), fast_settings).extract("Something quiet")

        assert prefs == ExtractedPreferences()

    @pytest.mark.asyncio
    async def test_extract_for_user_uses_synthesised_text_and_structured_fallback(self, settings):
        provider = FakeLLMProvider([RuntimeError("down")])
        user = make_user(looking_for={"minRooms": "2", "maxColdRent": "1000", "districts": ["Mitte"]})

        prefs = await PreferenceExtractor(provider, settings).extract_for_user(user)

        assert "with at least 2 rooms" in provider.calls[0]["user_prompt"]
        assert prefs.max_rent == 1000
        assert prefs.min_rooms == 2
        assert prefs.preferred_districts == ["Mitte"]

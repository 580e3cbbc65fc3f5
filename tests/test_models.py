"""
Tests de parsing de campos y modelos.
"""

from decimal import Decimal

import pytest

from tauschmatch.models import (
    ExtractedPreferences,
    Listing,
    LookingFor,
    MatchResult,
    SavedListing,
    UserProfile,
    saved_listing_key,
)
from tauschmatch.models.fields import parse_bool, parse_number, round_half_up

from conftest import make_listing


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.200 €", 1200.0),
            ("2,5", 2.5),
            ("950", 950.0),
            ("1.200,50", 1200.5),
            ("12.5", 12.5),
            ("ca. 65 m²", 65.0),
            (3, 3.0),
        ],
    )
    def test_parses_form_text(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "keine Angabe", None, True])
    def test_unparseable_is_absent_not_zero(self, raw):
        assert parse_number(raw) is None

    def test_parse_bool(self):
        assert parse_bool("ja") is True
        assert parse_bool("false") is False
        assert parse_bool(None) is False


class TestRoundHalfUp:
    def test_half_goes_up(self):
        assert round_half_up(4.5) == 5
        assert round_half_up(Decimal("6.5")) == 7

    def test_not_bankers_rounding(self):
        # round() de Python daría 2
        assert round_half_up(2.5) == 3

    def test_below_half_goes_down(self):
        assert round_half_up(4.49) == 4


class TestUserProfile:
    def test_numeric_fields_parsed_once(self):
        user = UserProfile.model_validate({
            "uid": "abc",
            "myApartment": {"rooms": "2,5", "coldRent": "1.200 €", "squareMeters": ""},
            "lookingFor": {"minRooms": "3", "maxColdRent": "n/a", "districts": "Mitte, Pankow"},
        })
        assert user.id == "abc"
        assert user.my_apartment.rooms == 2.5
        assert user.my_apartment.cold_rent == 1200.0
        assert user.my_apartment.square_meters is None
        assert user.looking_for.max_cold_rent is None
        assert user.looking_for.districts == ["Mitte", "Pankow"]

    def test_legacy_descriptions_are_folded(self):
        user = UserProfile.model_validate({
            "id": "u1",
            "offeredDescription": "Sunny Altbau with balcony",
            "lookingForDescription": "Quiet place near a park",
        })
        assert user.offered_description == "Sunny Altbau with balcony"
        assert user.looking_for_description == "Quiet place near a park"

    def test_nested_description_wins_over_legacy(self):
        user = UserProfile.model_validate({
            "id": "u1",
            "description": "legacy text",
            "myApartment": {"description": "nested text"},
        })
        assert user.offered_description == "nested text"

    def test_address(self):
        user = UserProfile.model_validate({
            "id": "u1",
            "myApartment": {"street": "Oranienstraße", "number": "12", "zipcode": "10999", "city": "Berlin"},
        })
        assert user.my_apartment.address == "Oranienstraße 12, 10999 Berlin"


class TestListing:
    def test_required_fields_present(self):
        assert make_listing().has_required_fields() is True

    def test_missing_cold_rent_is_not_usable(self):
        assert make_listing(cold_rent=None).has_required_fields() is False

    def test_empty_title_is_not_usable(self):
        assert make_listing(title="").has_required_fields() is False

    def test_accepts_camel_case_document(self):
        listing = Listing.model_validate({
            "id": "x",
            "coldRent": "850",
            "squareMeters": "55,5",
            "balconyOrTerrace": "true",
            "lookingForDescription": "Suche 3 Zimmer",
            "searchCriteria": {"minRooms": 3},
        })
        assert listing.cold_rent == 850.0
        assert listing.square_meters == 55.5
        assert listing.balcony_or_terrace is True
        assert listing.looking_for_description == "Suche 3 Zimmer"
        assert listing.search_criteria.min_rooms == 3.0

    def test_has_free_text(self):
        assert make_listing().has_free_text is False
        assert make_listing(description="Schöne Wohnung").has_free_text is True


class TestExtractedPreferences:
    def test_fallback_from_looking_for(self):
        looking_for = LookingFor(max_cold_rent=900, min_rooms=2, districts=["Pankow"], pets_allowed=True)
        prefs = ExtractedPreferences.from_looking_for(looking_for)

        assert prefs.max_rent == 900
        assert prefs.budget == 900
        assert prefs.min_rooms == 2
        assert prefs.preferred_districts == ["Pankow"]
        assert prefs.pet_friendly is True
        assert prefs.quiet is False

    def test_reads_camel_case_llm_output(self):
        prefs = ExtractedPreferences.model_validate({
            "quiet": True,
            "nearPublicTransport": True,
            "maxRent": "1.100",
            "preferredDistricts": "Neukölln",
            "lifestyle": ["creative", ""],
        })
        assert prefs.near_public_transport is True
        assert prefs.max_rent == 1100.0
        assert prefs.preferred_districts == ["Neukölln"]
        assert prefs.lifestyle == ["creative"]


class TestMatchResult:
    def test_response_is_camel_case(self):
        result = MatchResult(listing=make_listing(), score=7, structured_score=8, semantic_score=6)
        data = result.to_response_dict()

        assert data["structuredScore"] == 8
        assert data["semanticScore"] == 6
        assert set(data["reasonBreakdown"]) == {"theirApartment", "yourApartment"}
        assert data["reasonBreakdown"]["theirApartment"] == {"structured": [], "semantic": []}
        assert data["listing"]["coldRent"] == 950.0


class TestSavedListing:
    def test_key_scheme(self):
        assert saved_listing_key("u1", "l9") == "u1_l9"

    def test_db_dict_uses_pair_key_and_snapshot(self):
        saved = SavedListing(user_id="u1", listing_id="l1", listing=make_listing("l1"))
        data = saved.to_db_dict()

        assert data["id"] == "u1_l1"
        assert data["listing"]["title"] == "Wohnung l1"
        assert "saved_at" in data

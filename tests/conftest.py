"""
Pytest fixtures compartidas: LLM falso, repositorios en memoria y settings.
"""

import json
from typing import Optional

import pytest

from tauschmatch.analysis.llm_providers import BaseLLMProvider, LLMResponse
from tauschmatch.config import Settings
from tauschmatch.database.repositories import ListingRepository
from tauschmatch.models import Listing, MatchFilters, SavedListing, UserProfile, saved_listing_key


class FakeLLMProvider(BaseLLMProvider):
    """
    Proveedor con respuestas guionadas.

    Cada llamada consume el siguiente elemento de la cola: un str se
    devuelve como texto, una excepción se lanza. Con la cola vacía se
    devuelve `default`.
    """

    provider_name = "fake"

    def __init__(self, responses: Optional[list] = None, default: str = "[]"):
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[dict] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt})
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, BaseException):
            raise item
        if not isinstance(item, str):
            item = json.dumps(item)
        return LLMResponse(text=item, model="fake-model", provider=self.provider_name)


class QuotaExceeded(Exception):
    """Imita el error 429 de los SDKs."""

    def __init__(self, message: str = "Rate limit reached"):
        super().__init__(message)
        self.status_code = 429


class FakeListingRepository:
    def __init__(self, listings: Optional[list[Listing]] = None, error: Optional[Exception] = None):
        self.listings = list(listings or [])
        self.error = error
        self.calls: list[tuple[Optional[MatchFilters], int]] = []
        self.deleted: list[str] = []

    def search_by_filters(self, filters=None, limit=30):
        self.calls.append((filters, limit))
        if self.error is not None:
            raise self.error
        return self.listings[:limit]

    def get_by_id(self, listing_id):
        return next((l for l in self.listings if l.id == listing_id), None)

    def get_all(self):
        return list(self.listings)

    find_duplicate_ids = staticmethod(ListingRepository.find_duplicate_ids)
    find_incomplete_ids = staticmethod(ListingRepository.find_incomplete_ids)

    def delete(self, listing_id):
        if self.error is not None:
            raise self.error
        self.deleted.append(listing_id)
        before = len(self.listings)
        self.listings = [l for l in self.listings if l.id != listing_id]
        return len(self.listings) < before


class FakeUserRepository:
    def __init__(self, users: Optional[list[UserProfile]] = None, error: Optional[Exception] = None):
        self.users = {u.id: u for u in users or []}
        self.error = error

    def get_by_id(self, user_id):
        if self.error is not None:
            raise self.error
        return self.users.get(user_id)


class FakeSavedListingRepository:
    def __init__(self):
        self.saved: dict[str, SavedListing] = {}

    def save(self, user_id, listing):
        key = saved_listing_key(user_id, listing.id)
        saved = SavedListing(id=key, user_id=user_id, listing_id=listing.id, listing=listing)
        self.saved[key] = saved
        return saved

    def unsave(self, user_id, listing_id):
        return self.saved.pop(saved_listing_key(user_id, listing_id), None) is not None

    def get_saved_listings(self, user_id):
        mine = [s for s in self.saved.values() if s.user_id == user_id]
        return sorted(mine, key=lambda s: s.saved_at, reverse=True)

    def is_saved(self, user_id, listing_id):
        return saved_listing_key(user_id, listing_id) in self.saved


def make_listing(listing_id: str = "l1", **overrides) -> Listing:
    """Listing completo en Mitte; los overrides pisan cualquier campo."""
    data = {
        "id": listing_id,
        "link": f"https://example.com/tausch/{listing_id}",
        "title": f"Wohnung {listing_id}",
        "district": "Mitte",
        "type": "Wohnung",
        "cold_rent": 950,
        "rooms": 2,
        "square_meters": 60,
    }
    data.update(overrides)
    return Listing.model_validate(data)


def make_user(user_id: str = "u1", my_apartment: Optional[dict] = None, looking_for: Optional[dict] = None) -> UserProfile:
    return UserProfile.model_validate({
        "id": user_id,
        "myApartment": my_apartment if my_apartment is not None else {
            "type": "Wohnung",
            "rooms": "3",
            "squareMeters": "75",
            "coldRent": "800",
            "balcony": True,
        },
        "lookingFor": looking_for if looking_for is not None else {
            "type": "Wohnung",
            "minRooms": "2",
            "maxColdRent": "1000",
            "districts": ["Mitte"],
        },
    })


@pytest.fixture
def settings():
    """Settings de test: sin pausa entre batches ni credenciales."""
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_key=None,
        groq_api_key=None,
        gemini_api_key=None,
        semantic_batch_delay_seconds=0,
        llm_timeout_seconds=5,
        llm_transient_retries=0,
    )


@pytest.fixture
def fake_provider():
    return FakeLLMProvider()


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def listing():
    return make_listing()

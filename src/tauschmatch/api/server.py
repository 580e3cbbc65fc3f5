"""
API HTTP (aiohttp) del motor de matching.

Rutas:
    GET    /health
    POST   /api/find-matches
    POST   /api/extract-preferences
    POST   /api/analyze-listing
    GET    /api/users/{user_id}/saved-listings
    GET    /api/users/{user_id}/saved-listings/{listing_id}
    PUT    /api/users/{user_id}/saved-listings/{listing_id}
    DELETE /api/users/{user_id}/saved-listings/{listing_id}
"""

import json
from typing import Any, Optional

import structlog
from aiohttp import web
from pydantic import ValidationError

from tauschmatch.analysis import (
    ListingDescriptionAnalyzer,
    PreferenceExtractor,
    get_optional_llm_provider,
)
from tauschmatch.config import Settings, get_settings
from tauschmatch.database import ListingRepository, SavedListingRepository, UserRepository
from tauschmatch.matching import MatchingEngine, MatchingError
from tauschmatch.models import Listing, MatchFilters, UserProfile

logger = structlog.get_logger()


def _error(message: str, status: int, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


async def _read_json(request: web.Request) -> dict:
    """Body JSON como dict; body vacío cuenta como {}."""
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Invalid JSON body."}),
            content_type="application/json",
        ) from e
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "JSON body must be an object."}),
            content_type="application/json",
        )
    return body


class MatchingAPI:
    """Handlers HTTP con sus colaboradores inyectados."""

    def __init__(
        self,
        engine: MatchingEngine,
        user_repo: UserRepository,
        listing_repo: ListingRepository,
        saved_repo: SavedListingRepository,
        extractor: PreferenceExtractor,
        analyzer: ListingDescriptionAnalyzer,
        settings: Settings,
    ):
        self.engine = engine
        self.user_repo = user_repo
        self.listing_repo = listing_repo
        self.saved_repo = saved_repo
        self.extractor = extractor
        self.analyzer = analyzer
        self.settings = settings

    async def health(self, _: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def find_matches(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        user_data = body.get("user")
        user_id = body.get("userId")

        if user_data:
            try:
                user = UserProfile.model_validate(user_data)
            except ValidationError as e:
                logger.warning("Perfil inválido en find-matches", error=str(e))
                return _error("Invalid user data.", 400, matches=[])
        elif user_id:
            try:
                user = self.user_repo.get_by_id(str(user_id))
            except Exception as e:
                logger.error("Error consultando usuario", user_id=user_id, error=str(e))
                return _error("Failed to find matches.", 500, matches=[])
            if user is None:
                return _error("User not found.", 404, matches=[])
        else:
            return _error("User data is required.", 400, matches=[])

        try:
            filters = MatchFilters.model_validate(body.get("filters") or {})
        except ValidationError as e:
            logger.warning("Filtros inválidos", error=str(e))
            return _error("Invalid filters.", 400, matches=[])

        raw_limit = body.get("limit") or self.settings.match_default_limit
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError):
            return _error("Invalid limit.", 400, matches=[])
        if limit < 1:
            return _error("Invalid limit.", 400, matches=[])

        logger.info(
            "find-matches recibido",
            user_id=user.id,
            limit=limit,
            offered_length=len(user.offered_description),
            looking_for_length=len(user.looking_for_description),
        )

        try:
            matches = await self.engine.find_matches(user, filters=filters, limit=limit)
        except MatchingError as e:
            logger.error("Error en find-matches", user_id=user.id, error=str(e))
            return _error("Failed to find matches.", 500, matches=[])

        return web.json_response([match.to_response_dict() for match in matches])

    async def extract_preferences(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        description = str(body.get("userDescription") or "").strip()
        if not description:
            return _error("User description is required", 400)

        preferences = await self.extractor.extract(description)
        return web.json_response(preferences.model_dump(mode="json", by_alias=True))

    async def analyze_listing(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        description = str(body.get("description") or "").strip()
        listing_id = body.get("listingId")

        if listing_id and not description:
            listing = self.listing_repo.get_by_id(str(listing_id))
            if listing is None:
                return _error("Listing not found", 404)
            if not listing.description.strip():
                return _error("No description available for analysis", 400)
            description = listing.description.strip()

        if not description:
            return _error("Description is required", 400)

        analysis = await self.analyzer.analyze(description)
        return web.json_response(analysis.model_dump(mode="json"))

    async def list_saved(self, request: web.Request) -> web.Response:
        user_id = request.match_info["user_id"]
        saved = self.saved_repo.get_saved_listings(user_id)
        return web.json_response([s.model_dump(mode="json", by_alias=True) for s in saved])

    async def is_saved(self, request: web.Request) -> web.Response:
        user_id = request.match_info["user_id"]
        listing_id = request.match_info["listing_id"]
        return web.json_response({"saved": self.saved_repo.is_saved(user_id, listing_id)})

    async def save(self, request: web.Request) -> web.Response:
        user_id = request.match_info["user_id"]
        listing_id = request.match_info["listing_id"]
        body = await _read_json(request)

        listing: Optional[Listing]
        if isinstance(body.get("listing"), dict):
            try:
                listing = Listing.model_validate({**body["listing"], "id": listing_id})
            except ValidationError as e:
                logger.warning("Snapshot de listing inválido", error=str(e))
                return _error("Invalid listing data.", 400)
        else:
            listing = self.listing_repo.get_by_id(listing_id)
            if listing is None:
                return _error("Listing not found", 404)

        saved = self.saved_repo.save(user_id, listing)
        return web.json_response(saved.model_dump(mode="json", by_alias=True), status=201)

    async def unsave(self, request: web.Request) -> web.Response:
        user_id = request.match_info["user_id"]
        listing_id = request.match_info["listing_id"]
        return web.json_response({"removed": self.saved_repo.unsave(user_id, listing_id)})


def create_app(
    engine: Optional[MatchingEngine] = None,
    user_repo: Optional[UserRepository] = None,
    listing_repo: Optional[ListingRepository] = None,
    saved_repo: Optional[SavedListingRepository] = None,
    extractor: Optional[PreferenceExtractor] = None,
    analyzer: Optional[ListingDescriptionAnalyzer] = None,
    settings: Optional[Settings] = None,
) -> web.Application:
    """
    Arma la aplicación aiohttp.

    Lo que no se inyecta se construye con la configuración por defecto
    (Supabase + LLM configurado, si hay API key).
    """
    settings = settings or get_settings()
    user_repo = user_repo or UserRepository()
    listing_repo = listing_repo or ListingRepository()

    needs_provider = engine is None or extractor is None or analyzer is None
    provider = get_optional_llm_provider(settings) if needs_provider else None

    api = MatchingAPI(
        engine=engine or MatchingEngine(
            listing_repo=listing_repo,
            user_repo=user_repo,
            provider=provider,
            settings=settings,
        ),
        user_repo=user_repo,
        listing_repo=listing_repo,
        saved_repo=saved_repo or SavedListingRepository(),
        extractor=extractor or PreferenceExtractor(provider, settings=settings),
        analyzer=analyzer or ListingDescriptionAnalyzer(provider),
        settings=settings,
    )

    app = web.Application()
    app.router.add_get("/health", api.health)
    app.router.add_post("/api/find-matches", api.find_matches)
    app.router.add_post("/api/extract-preferences", api.extract_preferences)
    app.router.add_post("/api/analyze-listing", api.analyze_listing)
    app.router.add_get("/api/users/{user_id}/saved-listings", api.list_saved)
    app.router.add_get("/api/users/{user_id}/saved-listings/{listing_id}", api.is_saved)
    app.router.add_put("/api/users/{user_id}/saved-listings/{listing_id}", api.save)
    app.router.add_delete("/api/users/{user_id}/saved-listings/{listing_id}", api.unsave)
    return app

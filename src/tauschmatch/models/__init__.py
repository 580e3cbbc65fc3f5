"""
Modelos de datos del sistema.

- UserProfile: vivienda ofrecida + búsqueda del usuario
- Listing: anuncio de intercambio (solo lectura para el matcher)
- MatchResult: salida del motor, no se persiste
"""

from tauschmatch.models.user import UserProfile, OfferedApartment, LookingFor
from tauschmatch.models.listing import Listing, SearchCriteria
from tauschmatch.models.preferences import ExtractedPreferences
from tauschmatch.models.match import (
    MatchFilters,
    MatchResult,
    ReasonBreakdown,
    ReasonBucket,
    SEMANTIC_FLOOR_SCORE,
)
from tauschmatch.models.saved_listing import SavedListing, saved_listing_key
from tauschmatch.models.analysis import ListingAnalysis

__all__ = [
    # User
    "UserProfile",
    "OfferedApartment",
    "LookingFor",
    # Listing
    "Listing",
    "SearchCriteria",
    # Matching
    "ExtractedPreferences",
    "MatchFilters",
    "MatchResult",
    "ReasonBreakdown",
    "ReasonBucket",
    "SEMANTIC_FLOOR_SCORE",
    # Saved
    "SavedListing",
    "saved_listing_key",
    "ListingAnalysis",
]

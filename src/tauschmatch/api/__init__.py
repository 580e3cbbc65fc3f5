"""
API HTTP del motor de matching.
"""

from tauschmatch.api.server import MatchingAPI, create_app

__all__ = [
    "MatchingAPI",
    "create_app",
]

"""
Annuaire API

FastAPI application exposing /api/search and /api/practitioner.
"""

from annuaire.api.app import create_app

__all__ = ["create_app"]

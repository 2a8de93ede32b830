"""API routers."""

from annuaire.api.routes import health, search

__all__ = ["health", "search"]

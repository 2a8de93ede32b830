"""Request-scoped dependencies."""

from fastapi import Request

from annuaire.config import Settings
from annuaire.fhir.client import RegistryClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry_client(request: Request) -> RegistryClient:
    """A fresh client per request, sharing the application's connection pool."""
    settings: Settings = request.app.state.settings
    return RegistryClient.from_settings(request.app.state.http, settings.registry)

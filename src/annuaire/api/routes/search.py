"""Search and practitioner detail endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query

from annuaire.config import Settings
from annuaire.api.deps import get_app_settings, get_registry_client
from annuaire.fhir.client import RegistryClient
from annuaire.models import SearchQuery
from annuaire.search import QueryRouter, get_practitioner

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/search")
async def search(
    name: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    specialty: Optional[str] = Query(None),
    specialty_code: Optional[str] = Query(None),
    national_id: Optional[str] = Query(None),
    rpps: Optional[str] = Query(None, description="Alias of national_id"),
    count: Optional[int] = Query(None),
    continuation_token: Optional[str] = Query(None),
    client: RegistryClient = Depends(get_registry_client),
    settings: Settings = Depends(get_app_settings),
):
    """
    Search practitioners.
    
    Exactly one strategy runs, chosen by precedence:
    continuation_token > national_id > specialty_code > name > city/specialty.
    """
    query = SearchQuery(
        name=name,
        city=city,
        specialty=specialty,
        specialty_code=specialty_code,
        national_id=national_id or rpps,
        count=count,
        continuation_token=continuation_token,
    )
    router_ = QueryRouter(client, settings.search, settings.registry.identifier_system)
    envelope = await router_.search(query)
    return envelope.to_dict()


@router.get("/practitioner")
async def practitioner_detail(
    id: Optional[str] = Query(None),
    client: RegistryClient = Depends(get_registry_client),
    settings: Settings = Depends(get_app_settings),
):
    """Detail of one practitioner with roles and organizations."""
    result = await get_practitioner(client, settings.search, id)
    return result.to_dict()

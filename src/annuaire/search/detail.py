"""Practitioner detail: one practitioner with all its roles."""

import re

import structlog

from annuaire.config import SearchSettings
from annuaire.errors import PractitionerNotFound, SearchValidationError
from annuaire.fhir.client import RegistryClient
from annuaire.fhir.models import ResourceType
from annuaire.fhir.normalizer import parse_practitioner
from annuaire.models import MergedResult
from annuaire.search.batch import collect_roles
from annuaire.search.merge import merge

logger = structlog.get_logger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9\-.]{1,64}$")


async def get_practitioner(
    client: RegistryClient,
    settings: SearchSettings,
    practitioner_id: str | None,
) -> MergedResult:
    """
    Read a practitioner and resolve its roles and organizations.
    
    Raises:
        SearchValidationError: missing or malformed id
        PractitionerNotFound: the registry has no such practitioner
    """
    practitioner_id = (practitioner_id or "").strip()
    if not practitioner_id:
        raise SearchValidationError("Missing id parameter")
    if not _ID_PATTERN.match(practitioner_id):
        raise SearchValidationError(f"Invalid practitioner id '{practitioner_id}'")
    
    resource = await client.read(ResourceType.PRACTITIONER, practitioner_id)
    if resource is None:
        raise PractitionerNotFound(f"Practitioner {practitioner_id} not found")
    practitioner = parse_practitioner(resource)
    
    bundle = await client.search(
        ResourceType.PRACTITIONER_ROLE,
        {
            "practitioner": practitioner_id,
            "_include": "PractitionerRole:organization",
            "_count": settings.detail_role_count,
        },
    )
    roles, organizations = collect_roles([bundle])
    
    logger.info("Practitioner detail", roles=len(roles), organizations=len(organizations))
    return merge([practitioner], roles, organizations)[0]

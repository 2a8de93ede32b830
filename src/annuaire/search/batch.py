"""
Batch fetcher.

Turns a set of ids into the fewest registry queries carrying at most
`batch_size` comma-separated ids each, stopping after `max_batches`.
Ids beyond the ceiling are left out on purpose; that bounds the number
of outbound calls per search.
"""

import asyncio
from typing import Any, Iterable

import structlog

from annuaire.config import SearchSettings
from annuaire.fhir.client import RegistryClient
from annuaire.fhir.models import Bundle, ResourceType
from annuaire.fhir.normalizer import (
    parse_organization,
    parse_practitioner,
    parse_practitioner_role,
)
from annuaire.models import Organization, Practitioner, PractitionerRole

logger = structlog.get_logger(__name__)


def split_batches(ids: Iterable[str], batch_size: int, max_batches: int) -> list[list[str]]:
    """Unique ids in first-seen order, chunked and truncated to max_batches."""
    unique = list(dict.fromkeys(i for i in ids if i))
    batches = [unique[i:i + batch_size] for i in range(0, len(unique), batch_size)]
    if len(batches) > max_batches:
        logger.info(
            "Batch ceiling reached",
            ids=len(unique),
            batches=len(batches),
            max_batches=max_batches,
            skipped_ids=len(unique) - max_batches * batch_size,
        )
    return batches[:max_batches]


def collect_roles(
    bundles: list[Bundle],
) -> tuple[list[PractitionerRole], dict[str, Organization]]:
    """Roles and included organizations of the bundles, deduplicated by id (last seen wins)."""
    roles: dict[str, PractitionerRole] = {}
    organizations: dict[str, Organization] = {}
    for bundle in bundles:
        for resource in bundle.resources(ResourceType.PRACTITIONER_ROLE):
            role = parse_practitioner_role(resource)
            roles[role.id] = role
        for resource in bundle.resources(ResourceType.ORGANIZATION):
            org = parse_organization(resource)
            organizations[org.id] = org
    return list(roles.values()), organizations


class BatchFetcher:
    """Fetches roles and practitioners for id sets, phase by phase."""
    
    def __init__(self, client: RegistryClient, settings: SearchSettings):
        self.client = client
        self.settings = settings
    
    async def _fetch(
        self,
        resource_type: ResourceType,
        key: str,
        ids: Iterable[str],
        extra: list[tuple[str, Any]],
        max_batches: int,
        count: int | None = None,
    ) -> list[Bundle]:
        batches = split_batches(ids, self.settings.role_batch_size, max_batches)
        # Batches of one phase run concurrently; results keep batch order.
        tasks = [
            asyncio.ensure_future(self.client.search(
                resource_type,
                [(key, ",".join(batch)), ("_count", count or len(batch)), *extra],
            ))
            for batch in batches
        ]
        try:
            return await asyncio.gather(*tasks)
        except Exception:
            # One failed batch fails the phase; siblings still in flight are abandoned.
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            if pending:
                logger.info("Pending batches cancelled", cancelled=len(pending))
            raise
    
    async def fetch_roles_for(
        self,
        practitioner_ids: Iterable[str],
    ) -> tuple[list[PractitionerRole], dict[str, Organization]]:
        """
        Roles of the given practitioners, with their organizations embedded.
        
        Returns:
            (roles, organizations by id), both deduplicated by id
        """
        bundles = await self._fetch(
            ResourceType.PRACTITIONER_ROLE,
            "practitioner",
            practitioner_ids,
            [("_include", "PractitionerRole:organization")],
            self.settings.max_role_batches,
            count=self.settings.role_page_count,
        )
        return collect_roles(bundles)
    
    async def fetch_roles_for_organizations(
        self,
        organization_ids: Iterable[str],
    ) -> list[PractitionerRole]:
        """Roles held at any of the given organizations."""
        bundles = await self._fetch(
            ResourceType.PRACTITIONER_ROLE,
            "organization",
            organization_ids,
            [],
            self.settings.max_role_batches,
            count=self.settings.role_page_count,
        )
        roles, _ = collect_roles(bundles)
        return roles
    
    async def fetch_practitioners_for(
        self,
        practitioner_ids: Iterable[str],
        qualification_code: str | None = None,
    ) -> list[Practitioner]:
        """Practitioner records for the ids, optionally constrained by qualification code."""
        extra = [("qualification-code", qualification_code)] if qualification_code else []
        bundles = await self._fetch(
            ResourceType.PRACTITIONER,
            "_id",
            practitioner_ids,
            extra,
            self.settings.practitioner_batch_ceiling,
        )
        practitioners: dict[str, Practitioner] = {}
        for bundle in bundles:
            for resource in bundle.resources(ResourceType.PRACTITIONER):
                practitioner = parse_practitioner(resource)
                practitioners[practitioner.id] = practitioner
        return list(practitioners.values())

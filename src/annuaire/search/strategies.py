"""
Search strategies.

Each strategy turns one logical search into a bounded sequence of
registry queries and assembles a SearchEnvelope:

- IdentifierLookup: exact national identifier
- QualificationLookup: qualification code, optionally with a name
- NameLookup: free-text name through a fallback chain of query plans
- RoleAttributeLookup: city and/or specialty, queried on roles
- SpecialtyCityLookup: qualification code + city via organizations
- ResumeLookup: next page of a previous search
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from annuaire.config import SearchSettings
from annuaire.fhir.client import RegistryClient
from annuaire.fhir.models import Bundle, ResourceType
from annuaire.fhir.normalizer import (
    parse_organization,
    parse_practitioner,
    parse_practitioner_role,
)
from annuaire.models import MergedResult, Practitioner, SearchEnvelope, SearchQuery
from annuaire.search.batch import BatchFetcher
from annuaire.search.filters import apply_post_filters
from annuaire.search.merge import merge, merge_role_groups
from annuaire.search.tokens import encode_token

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NamePlan:
    """One candidate Practitioner query for a free-text name."""
    label: str
    params: dict[str, str]
    
    @property
    def precise(self) -> bool:
        """Plan constrains both family and given names."""
        return "family" in self.params and "given" in self.params


def name_plans(name: str) -> list[NamePlan]:
    """
    Candidate plans, most precise first.
    
    "Marie Dupont" -> family=Marie given=Dupont, family=Dupont given=Marie,
    family=Marie, name="Marie Dupont". Single tokens skip the first two.
    """
    tokens = name.split()
    plans = []
    if len(tokens) >= 2:
        plans.append(NamePlan("family_given", {"family": tokens[0], "given": " ".join(tokens[1:])}))
        plans.append(NamePlan("given_family", {"family": tokens[-1], "given": " ".join(tokens[:-1])}))
    plans.append(NamePlan("family", {"family": tokens[0]}))
    plans.append(NamePlan("full_name", {"name": name}))
    return plans


def guidance_message(upstream_total: int, count: int) -> str:
    return (
        f"{upstream_total} praticiens correspondent à cette recherche, "
        f"seuls les {count} premiers sont affichés. "
        "Précisez la ville ou la spécialité pour affiner les résultats."
    )


class SearchStrategy(ABC):
    """
    Base class for all search strategies.
    
    A strategy instance serves exactly one logical search.
    """
    
    def __init__(self, client: RegistryClient, settings: SearchSettings):
        self.client = client
        self.settings = settings
        self.fetcher = BatchFetcher(client, settings)
    
    @property
    @abstractmethod
    def name(self) -> str:
        pass
    
    @abstractmethod
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        """
        Run the strategy.
        
        Args:
            query: Inbound search fields
            count: Page size, already clamped
        """
        pass
    
    async def _extend_pages(self, bundle: Bundle, query: SearchQuery) -> list[Bundle]:
        """
        Follow up to filter_extra_pages next links when post-filters will run
        and the first page does not hold the whole upstream result set.
        """
        pages = [bundle]
        if not query.has_post_filters:
            return pages
        if bundle.total is not None and bundle.total <= len(bundle.matches):
            return pages
        
        current = bundle
        for _ in range(self.settings.filter_extra_pages):
            if not current.next_link:
                break
            current = await self.client.follow(current.next_link)
            pages.append(current)
        
        logger.debug("Extra pages fetched before filtering", pages=len(pages) - 1)
        return pages
    
    async def _join_practitioners(
        self,
        practitioners: list[Practitioner],
        query: SearchQuery,
        apply_filters: bool = True,
    ) -> list[MergedResult]:
        """Resolve roles and organizations, merge, then post-filter."""
        if not practitioners:
            return []
        roles, organizations = await self.fetcher.fetch_roles_for(p.id for p in practitioners)
        results = merge(practitioners, roles, organizations)
        if apply_filters:
            results = apply_post_filters(results, query.city, query.specialty)
        return results
    
    @staticmethod
    def _practitioners(pages: list[Bundle]) -> list[Practitioner]:
        return [
            parse_practitioner(resource)
            for page in pages
            for resource in page.resources(ResourceType.PRACTITIONER)
        ]
    
    async def _practitioner_page_envelope(
        self,
        bundle: Bundle,
        query: SearchQuery,
        count: int,
    ) -> SearchEnvelope:
        """Envelope for a Practitioner searchset: extend, join, filter, cap."""
        pages = await self._extend_pages(bundle, query)
        results = await self._join_practitioners(self._practitioners(pages), query)
        
        upstream_total = bundle.total if bundle.total is not None else len(bundle.matches)
        message = None
        if upstream_total > count and not query.has_post_filters:
            message = guidance_message(upstream_total, count)
        
        return SearchEnvelope(
            results=results[:count],
            upstream_total=upstream_total,
            message=message,
            continuation_token=encode_token(pages[-1].next_link),
        )
    
    async def _first_matching_plan(
        self,
        plans: list[NamePlan],
        count: int,
        extra: Optional[dict[str, Any]] = None,
    ) -> tuple[Optional[NamePlan], Optional[Bundle]]:
        """First plan returning at least one practitioner; plans after it are not run."""
        for attempt, plan in enumerate(plans, 1):
            params = {**plan.params, **(extra or {}), "_count": count}
            bundle = await self.client.search(ResourceType.PRACTITIONER, params)
            if bundle.resources(ResourceType.PRACTITIONER):
                logger.info(
                    "Name plan accepted",
                    strategy=self.name,
                    plan=plan.label,
                    attempt=attempt,
                    precise=plan.precise,
                )
                return plan, bundle
            logger.debug("Name plan empty", strategy=self.name, plan=plan.label)
        return None, None


class IdentifierLookup(SearchStrategy):
    """Exact match on the national identifier; no fallback."""
    
    name = "identifier"
    
    def __init__(self, client: RegistryClient, settings: SearchSettings, identifier_system: str):
        super().__init__(client, settings)
        self.identifier_system = identifier_system
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        bundle = await self.client.search(
            ResourceType.PRACTITIONER,
            {
                "identifier": f"{self.identifier_system}|{query.national_id}",
                "_count": self.settings.identifier_page_size,
            },
        )
        practitioners = self._practitioners([bundle])
        if not practitioners:
            return SearchEnvelope()
        
        results = await self._join_practitioners(practitioners, query, apply_filters=False)
        return SearchEnvelope(
            results=results[:count],
            upstream_total=bundle.total if bundle.total is not None else len(practitioners),
            continuation_token=encode_token(bundle.next_link),
        )


class NameLookup(SearchStrategy):
    """Free-text name through the family/given fallback chain."""
    
    name = "name"
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        plan, bundle = await self._first_matching_plan(name_plans(query.name), count)
        if bundle is None:
            return SearchEnvelope(upstream_total=0)
        return await self._practitioner_page_envelope(bundle, query, count)


class SpecialtyCityLookup(SearchStrategy):
    """
    Qualification code AND city, which the registry cannot query at once.
    
    1. organizations in the city (bounded page count)
    2. roles at those organizations (bounded batches)
    3. practitioners among those roles holding the qualification (bounded batches)
    
    No upstream total is reported: it is not computable within the ceilings.
    """
    
    name = "specialty_city"
    
    async def _organizations_in(self, city: str) -> dict:
        bundle = await self.client.search(
            ResourceType.ORGANIZATION,
            {"address-city": city, "_count": self.settings.organization_page_size},
        )
        pages = [bundle]
        while bundle.next_link and len(pages) < self.settings.organization_page_ceiling:
            bundle = await self.client.follow(bundle.next_link)
            pages.append(bundle)
        
        organizations = {}
        for page in pages:
            for resource in page.resources(ResourceType.ORGANIZATION):
                org = parse_organization(resource)
                organizations[org.id] = org
        return organizations
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        organizations = await self._organizations_in(query.city)
        if not organizations:
            return SearchEnvelope(message=f"Aucune structure trouvée à {query.city}")
        
        roles = await self.fetcher.fetch_roles_for_organizations(organizations.keys())
        practitioner_ids = [r.practitioner_id for r in roles if r.practitioner_id]
        if not practitioner_ids:
            return SearchEnvelope()
        
        practitioners = await self.fetcher.fetch_practitioners_for(
            practitioner_ids, query.specialty_code
        )
        results = merge(practitioners, roles, organizations)
        results = apply_post_filters(results, specialty=query.specialty)
        
        logger.info(
            "Reverse lookup complete",
            organizations=len(organizations),
            roles=len(roles),
            candidates=len(set(practitioner_ids)),
            matched=len(results),
        )
        return SearchEnvelope(results=results[:count])


class QualificationLookup(SearchStrategy):
    """Qualification code, optionally narrowed by name; city is a post-filter."""
    
    name = "qualification"
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        if query.city and not query.name:
            delegate = SpecialtyCityLookup(self.client, self.settings)
            return await delegate.execute(query, count)
        
        constraint = {"qualification-code": query.specialty_code}
        bundle = None
        if query.name:
            _, bundle = await self._first_matching_plan(name_plans(query.name), count, constraint)
        if bundle is None:
            bundle = await self.client.search(
                ResourceType.PRACTITIONER, {**constraint, "_count": count}
            )
        if bundle.is_empty:
            return SearchEnvelope(upstream_total=bundle.total or 0)
        return await self._practitioner_page_envelope(bundle, query, count)


class RoleAttributeLookup(SearchStrategy):
    """City and/or specialty only: query roles with practitioners and organizations embedded."""
    
    name = "role_attribute"
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        params: list[tuple[str, Any]] = [
            ("_count", count),
            ("_include", "PractitionerRole:practitioner"),
            ("_include", "PractitionerRole:organization"),
        ]
        if query.city:
            params.append(("organization.address-city", query.city))
        
        bundle = await self.client.search(ResourceType.PRACTITIONER_ROLE, params)
        pages = await self._extend_pages(bundle, query)
        results = role_page_results(pages)
        results = apply_post_filters(results, query.city, query.specialty)
        
        return SearchEnvelope(
            results=results[:count],
            upstream_total=bundle.total if bundle.total is not None else len(bundle.matches),
            continuation_token=encode_token(pages[-1].next_link),
        )


def role_page_results(pages: list[Bundle]) -> list[MergedResult]:
    """Right-join merge of PractitionerRole pages with their embedded resources."""
    roles, practitioners, organizations = [], [], []
    for page in pages:
        roles.extend(parse_practitioner_role(r) for r in page.resources(ResourceType.PRACTITIONER_ROLE))
        practitioners.extend(parse_practitioner(r) for r in page.resources(ResourceType.PRACTITIONER))
        organizations.extend(parse_organization(r) for r in page.resources(ResourceType.ORGANIZATION))
    return merge_role_groups(roles, organizations, practitioners)


class ResumeLookup(SearchStrategy):
    """Replays a previous search's next link; post-filters still apply."""
    
    name = "resume"
    
    def __init__(self, client: RegistryClient, settings: SearchSettings, next_url: str):
        super().__init__(client, settings)
        self.next_url = next_url
    
    @staticmethod
    def _primary_type(bundle: Bundle) -> Optional[str]:
        matches = bundle.matches
        return matches[0].resource_type if matches else None
    
    async def execute(self, query: SearchQuery, count: int) -> SearchEnvelope:
        bundle = await self.client.follow(self.next_url)
        upstream_total = bundle.total
        primary = self._primary_type(bundle)
        
        if primary == ResourceType.PRACTITIONER.value:
            results = await self._join_practitioners(self._practitioners([bundle]), query)
        elif primary == ResourceType.PRACTITIONER_ROLE.value:
            results = apply_post_filters(role_page_results([bundle]), query.city, query.specialty)
        else:
            results = []
        
        return SearchEnvelope(
            results=results[:count],
            upstream_total=upstream_total,
            continuation_token=encode_token(bundle.next_link),
        )

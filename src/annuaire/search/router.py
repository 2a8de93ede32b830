"""
Query router.

Selects exactly one strategy per logical search, by strict precedence:
continuation token, national identifier, qualification code, name,
then city/specialty. A request carrying none of them is rejected before
any remote call.
"""

import structlog

from annuaire.config import SearchSettings
from annuaire.errors import SearchValidationError
from annuaire.fhir.client import RegistryClient
from annuaire.models import SearchEnvelope, SearchQuery
from annuaire.search.strategies import (
    IdentifierLookup,
    NameLookup,
    QualificationLookup,
    ResumeLookup,
    RoleAttributeLookup,
    SearchStrategy,
)
from annuaire.search.tokens import decode_token

logger = structlog.get_logger(__name__)


class QueryRouter:
    """
    Routes a SearchQuery to its strategy and runs it.
    
    Usage:
        router = QueryRouter(client, settings.search, settings.registry.identifier_system)
        envelope = await router.search(SearchQuery(name="Dupont Marie"))
    """
    
    def __init__(
        self,
        client: RegistryClient,
        settings: SearchSettings,
        identifier_system: str,
    ):
        self.client = client
        self.settings = settings
        self.identifier_system = identifier_system
    
    def select(self, query: SearchQuery) -> SearchStrategy:
        if query.continuation_token:
            next_url = decode_token(query.continuation_token, self.client.base_url)
            return ResumeLookup(self.client, self.settings, next_url)
        if query.national_id:
            return IdentifierLookup(self.client, self.settings, self.identifier_system)
        if query.specialty_code:
            return QualificationLookup(self.client, self.settings)
        if query.name:
            return NameLookup(self.client, self.settings)
        if query.city or query.specialty:
            return RoleAttributeLookup(self.client, self.settings)
        raise SearchValidationError(
            "Au moins un critère est requis : name, city, specialty, specialty_code ou national_id"
        )
    
    async def search(self, query: SearchQuery) -> SearchEnvelope:
        strategy = self.select(query)
        count = self.settings.clamp_count(query.count)
        
        logger.info("Search routed", strategy=strategy.name, count=count)
        envelope = await strategy.execute(query, count)
        logger.info(
            "Search complete",
            strategy=strategy.name,
            total=envelope.total,
            upstream_total=envelope.upstream_total,
            registry_calls=self.client.calls,
        )
        return envelope

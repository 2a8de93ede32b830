"""
Annuaire Santé FHIR client

One RegistryClient is created per logical search on top of the shared
httpx.AsyncClient, so the call count below is per request.
"""

from typing import Any, Iterable, Mapping, Optional, Union

import httpx
import structlog

from annuaire.config import RegistrySettings
from annuaire.errors import UpstreamError
from annuaire.fhir.models import Bundle, ResourceType

logger = structlog.get_logger(__name__)

SearchParams = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]

API_KEY_HEADER = "ESANTE-API-KEY"


class RegistryClient:
    """
    Read-only FHIR R4 client for the Annuaire Santé gateway.
    
    Features:
    - Search with parameters (repeated keys allowed)
    - Continuation through "next" links
    - Read by id
    """
    
    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
    ):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout
        self.calls = 0
    
    @classmethod
    def from_settings(cls, http: httpx.AsyncClient, settings: RegistrySettings) -> "RegistryClient":
        return cls(
            http,
            base_url=settings.normalized_base_url,
            api_key=settings.api_key.get_secret_value(),
            timeout=settings.timeout,
        )
    
    def _headers(self) -> dict:
        return {
            "Accept": "application/fhir+json",
            API_KEY_HEADER: self._api_key,
        }
    
    def owns(self, url: str) -> bool:
        """True when url points below the configured base URL."""
        return url.startswith(self.base_url + "/") or url.startswith(self.base_url + "?")
    
    async def _get(self, url: str, params: Optional[SearchParams] = None) -> httpx.Response:
        self.calls += 1
        try:
            response = await self.http.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Registry call failed", url=url, call=self.calls, error=str(e))
            raise UpstreamError(f"FHIR API unreachable: {e}") from e
        
        logger.info(
            "Registry call",
            url=str(response.request.url),
            status=response.status_code,
            call=self.calls,
        )
        return response
    
    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("FHIR API returned a non-JSON body", response.status_code) from e
    
    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        body = response.text[:200]
        raise UpstreamError(f"FHIR API {response.status_code}: {body}", response.status_code)
    
    async def search(
        self,
        resource_type: ResourceType | str,
        params: SearchParams,
    ) -> Bundle:
        """Search one resource type."""
        name = resource_type.value if isinstance(resource_type, ResourceType) else resource_type
        response = await self._get(f"{self.base_url}/{name}", params=params)
        self._raise_for_status(response)
        return Bundle.from_dict(self._json(response))
    
    async def follow(self, url: str) -> Bundle:
        """Fetch the page behind a "next" link."""
        if not self.owns(url):
            raise UpstreamError(f"Refusing to follow link outside {self.base_url}")
        response = await self._get(url)
        self._raise_for_status(response)
        return Bundle.from_dict(self._json(response))
    
    async def read(
        self,
        resource_type: ResourceType | str,
        resource_id: str,
    ) -> Optional[dict]:
        """Read a single resource; None when the registry answers 404."""
        name = resource_type.value if isinstance(resource_type, ResourceType) else resource_type
        response = await self._get(f"{self.base_url}/{name}/{resource_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return self._json(response)

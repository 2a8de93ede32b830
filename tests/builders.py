"""Resource builders and an in-memory registry double for tests."""

from typing import Any, Callable

from annuaire.fhir.models import Bundle

BASE_URL = "https://registry.test/fhir/v2"
RPPS_SYSTEM = "https://rpps.esante.gouv.fr"


# =============================================================================
# Resource builders
# =============================================================================

def practitioner(
    id: str,
    family: str = "",
    given: str = "",
    rpps: str | None = None,
    qualifications: list[tuple[str, str]] = (),
) -> dict:
    resource = {
        "resourceType": "Practitioner",
        "id": id,
        "name": [{"family": family, "given": given.split() if given else []}],
        "qualification": [
            {"code": {"coding": [{"code": code, "display": display}]}}
            for code, display in qualifications
        ],
    }
    if rpps:
        resource["identifier"] = [{"system": RPPS_SYSTEM, "value": rpps}]
    return resource


def role(
    id: str,
    practitioner_id: str | None = None,
    organization_id: str | None = None,
    specialties: list[str] = (),
) -> dict:
    resource = {
        "resourceType": "PractitionerRole",
        "id": id,
        "specialty": [{"coding": [{"display": s}]} for s in specialties],
    }
    if practitioner_id:
        resource["practitioner"] = {"reference": f"Practitioner/{practitioner_id}"}
    if organization_id:
        resource["organization"] = {"reference": f"Organization/{organization_id}"}
    return resource


def organization(id: str, name: str = "", city: str | None = None, postal_code: str | None = None) -> dict:
    resource = {"resourceType": "Organization", "id": id, "name": name}
    if city:
        resource["address"] = [{"line": ["1 rue de la Paix"], "postalCode": postal_code, "city": city}]
    return resource


def bundle_dict(
    *resources: dict,
    total: int | None = None,
    next_link: str | None = None,
    included: tuple[dict, ...] = (),
) -> dict:
    data: dict[str, Any] = {
        "resourceType": "Bundle",
        "type": "searchset",
        "entry": [{"resource": r, "search": {"mode": "match"}} for r in resources]
        + [{"resource": r, "search": {"mode": "include"}} for r in included],
    }
    if total is not None:
        data["total"] = total
    if next_link:
        data["link"] = [{"relation": "next", "url": next_link}]
    return data


def bundle(*resources: dict, **kwargs) -> Bundle:
    return Bundle.from_dict(bundle_dict(*resources, **kwargs))


# =============================================================================
# Registry double
# =============================================================================

def _normalize(params) -> dict[str, list[str]]:
    items = params.items() if hasattr(params, "items") else params
    normalized: dict[str, list[str]] = {}
    for key, value in items:
        normalized.setdefault(key, []).append(str(value))
    return normalized


class FakeRegistry:
    """
    In-memory stand-in for RegistryClient.
    
    Responses are scripted with on()/page(); every call is recorded in
    `requests` as (resource_type or "follow"/"read", params or url).
    """
    
    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.requests: list[tuple[str, Any]] = []
        self._handlers: list[tuple[str, dict, Any]] = []
        self._pages: dict[str, Bundle] = {}
        self._resources: dict[tuple[str, str], dict] = {}
    
    @property
    def calls(self) -> int:
        return len(self.requests)
    
    def on(self, resource_type: str, response: Bundle | Callable[[dict], Bundle], **match: str):
        """Answer searches on resource_type whose params contain every match item."""
        self._handlers.append((resource_type, {k.replace("__", "-"): str(v) for k, v in match.items()}, response))
        return self
    
    def page(self, url: str, response: Bundle):
        self._pages[url] = response
        return self
    
    def resource(self, data: dict):
        self._resources[(data["resourceType"], data["id"])] = data
        return self
    
    def owns(self, url: str) -> bool:
        return url.startswith(self.base_url + "/") or url.startswith(self.base_url + "?")
    
    def searches(self, resource_type: str) -> list[dict[str, list[str]]]:
        return [params for kind, params in self.requests if kind == resource_type]
    
    async def search(self, resource_type, params) -> Bundle:
        name = getattr(resource_type, "value", resource_type)
        normalized = _normalize(params)
        self.requests.append((name, normalized))
        for kind, match, response in self._handlers:
            if kind != name:
                continue
            if all(value in normalized.get(key, []) for key, value in match.items()):
                return response(normalized) if callable(response) else response
        return bundle(total=0)
    
    async def follow(self, url: str) -> Bundle:
        self.requests.append(("follow", url))
        return self._pages.get(url, bundle(total=0))
    
    async def read(self, resource_type, resource_id: str) -> dict | None:
        name = getattr(resource_type, "value", resource_type)
        self.requests.append(("read", f"{name}/{resource_id}"))
        return self._resources.get((name, resource_id))



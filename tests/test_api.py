"""
Tests for the HTTP surface.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from annuaire.api.app import create_app
from annuaire.config import AppSettings, Settings
from annuaire.search.tokens import encode_token

from builders import BASE_URL, bundle_dict, organization, practitioner, role


def _app_client(registry_settings, search_settings, handler, calls=None) -> TestClient:
    def recording(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return handler(request)
    
    settings = Settings(app=AppSettings(), registry=registry_settings, search=search_settings)
    http = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return TestClient(create_app(settings, http_client=http))


@pytest.fixture
def empty_registry():
    return lambda request: httpx.Response(200, json=bundle_dict(total=0))


def test_root(registry_settings, search_settings, empty_registry):
    with _app_client(registry_settings, search_settings, empty_registry) as client:
        resp = client.get("/")
    
    assert resp.status_code == 200
    assert resp.text == "Annuaire Santé Proxy OK"
    assert "X-Request-ID" in resp.headers


def test_health(registry_settings, search_settings, empty_registry):
    with _app_client(registry_settings, search_settings, empty_registry) as client:
        resp = client.get("/health")
    
    assert resp.json()["status"] == "healthy"


def test_search_without_criteria_is_validation_error(registry_settings, search_settings, empty_registry):
    calls = []
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        resp = client.get("/api/search")
    
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert calls == []


def test_non_integer_count_is_validation_error(registry_settings, search_settings, empty_registry):
    calls = []
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        resp = client.get("/api/search", params={"name": "Dupont", "count": "abc"})
    
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert "count" in body["message"]
    assert calls == []


def test_forged_token_rejected(registry_settings, search_settings, empty_registry):
    calls = []
    token = encode_token("https://registry.test/fhir/v2/Practitioner?_count=1000")
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        resp = client.get("/api/search", params={"continuation_token": token})
    
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert calls == []


def test_foreign_continuation_token_rejected(registry_settings, search_settings, empty_registry):
    calls = []
    token = encode_token("https://evil.test/fhir/v2?_getpages=a")
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        resp = client.get("/api/search", params={"continuation_token": token})
    
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert calls == []


def test_identifier_search_without_match(registry_settings, search_settings, empty_registry):
    calls = []
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        resp = client.get("/api/search", params={"national_id": "123456789"})
    
    assert resp.status_code == 200
    assert resp.json() == {"total": 0, "results": [], "continuation_token": None}
    assert len(calls) == 1
    assert calls[0].url.params["identifier"] == "https://rpps.esante.gouv.fr|123456789"


def test_rpps_alias(registry_settings, search_settings, empty_registry):
    calls = []
    with _app_client(registry_settings, search_settings, empty_registry, calls) as client:
        client.get("/api/search", params={"rpps": "10001"})
    
    assert calls[0].url.params["identifier"].endswith("|10001")


def test_name_search_merges_roles(registry_settings, search_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/Practitioner"):
            return httpx.Response(200, json=bundle_dict(practitioner("p1", "DUPONT", "Marie"), total=1))
        return httpx.Response(
            200,
            json=bundle_dict(
                role("r1", "p1", "o1", ["Cardiologie"]),
                included=(organization("o1", "Cabinet du Parc", "Lyon", "69002"),),
            ),
        )
    
    with _app_client(registry_settings, search_settings, handler) as client:
        resp = client.get("/api/search", params={"name": "Dupont Marie", "city": "lyon"})
    
    body = resp.json()
    assert resp.status_code == 200
    assert body["total"] == 1
    assert body["upstream_total"] == 1
    result = body["results"][0]
    assert result["last_name"] == "DUPONT"
    assert result["roles"][0]["specialties"] == ["Cardiologie"]
    assert result["roles"][0]["organization"]["city"] == "Lyon"


def test_upstream_failure_maps_to_502(registry_settings, search_settings):
    handler = lambda request: httpx.Response(500, text="boom")
    
    with _app_client(registry_settings, search_settings, handler) as client:
        resp = client.get("/api/search", params={"name": "Dupont"})
    
    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "upstream_error"
    assert body["upstream_status"] == 500


def test_practitioner_detail(registry_settings, search_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/Practitioner/p1"):
            return httpx.Response(200, json=practitioner("p1", "DUPONT", "Marie", rpps="10001"))
        return httpx.Response(
            200,
            json=bundle_dict(role("r1", "p1", "o1"), included=(organization("o1", "Clinique", "Lyon"),)),
        )
    
    with _app_client(registry_settings, search_settings, handler) as client:
        resp = client.get("/api/practitioner", params={"id": "p1"})
    
    body = resp.json()
    assert resp.status_code == 200
    assert body["rpps"] == "10001"
    assert body["roles"][0]["organization"]["name"] == "Clinique"


def test_practitioner_detail_missing_id(registry_settings, search_settings, empty_registry):
    with _app_client(registry_settings, search_settings, empty_registry) as client:
        resp = client.get("/api/practitioner")
    
    assert resp.status_code == 400
    assert resp.json()["message"] == "Missing id parameter"


def test_practitioner_detail_not_found(registry_settings, search_settings):
    handler = lambda request: httpx.Response(404, json={"resourceType": "OperationOutcome"})
    
    with _app_client(registry_settings, search_settings, handler) as client:
        resp = client.get("/api/practitioner", params={"id": "unknown"})
    
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_malformed_reference_maps_to_502(registry_settings, search_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/Practitioner"):
            return httpx.Response(200, json=bundle_dict(practitioner("p1", "DUPONT"), total=1))
        broken = {"resourceType": "PractitionerRole", "id": "r1", "practitioner": {"reference": "garbage"}}
        return httpx.Response(200, json=bundle_dict(broken))
    
    with _app_client(registry_settings, search_settings, handler) as client:
        resp = client.get("/api/search", params={"name": "Dupont"})
    
    assert resp.status_code == 502
    assert resp.json()["error"] == "malformed_reference"


def test_cors_preflight(registry_settings, search_settings, empty_registry):
    with _app_client(registry_settings, search_settings, empty_registry) as client:
        resp = client.options(
            "/api/search",
            headers={"Origin": "https://app.test", "Access-Control-Request-Method": "GET"},
        )
    
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"

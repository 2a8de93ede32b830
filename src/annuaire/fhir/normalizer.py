"""
Registry resource normalizer.

Maps raw Practitioner, PractitionerRole and Organization resources to
the flat records in annuaire.models. Pure functions, no I/O.
"""

from typing import Any

from annuaire.fhir.models import ResourceType
from annuaire.fhir.references import reference_id
from annuaire.models import (
    ContactPoint,
    Identifier,
    IdentifierType,
    Organization,
    Practitioner,
    PractitionerRole,
    Qualification,
)


def _first(items: list | None) -> dict:
    return (items or [{}])[0] or {}


def _identifier_type(identifier: dict) -> str:
    system = identifier.get("system") or ""
    if "rpps" in system:
        return IdentifierType.RPPS.value
    if "adeli" in system:
        return IdentifierType.ADELI.value
    coding = _first((identifier.get("type") or {}).get("coding"))
    return coding.get("code") or IdentifierType.OTHER.value


def _telecoms(resource: dict, with_use: bool = True) -> list[ContactPoint]:
    return [
        ContactPoint(
            system=t.get("system"),
            value=t.get("value"),
            use=t.get("use") if with_use else None,
        )
        for t in resource.get("telecom") or []
    ]


def format_address(address: dict | None) -> str | None:
    """Lines, then "<postal code> <city>", then country, comma separated."""
    if not address:
        return None
    locality = " ".join(p for p in (address.get("postalCode"), address.get("city")) if p)
    parts = [*(address.get("line") or []), locality, address.get("country")]
    formatted = ", ".join(p for p in parts if p)
    return formatted or None


def parse_practitioner(resource: dict[str, Any]) -> Practitioner:
    name = _first(resource.get("name"))
    
    identifiers = [
        Identifier(
            system=i.get("system"),
            value=i.get("value"),
            type=_identifier_type(i),
        )
        for i in resource.get("identifier") or []
    ]
    
    qualifications = []
    for q in resource.get("qualification") or []:
        code = q.get("code") or {}
        coding = _first(code.get("coding"))
        qualifications.append(
            Qualification(
                code=coding.get("code"),
                display=coding.get("display") or code.get("text"),
                system=coding.get("system"),
            )
        )
    
    rpps = next(
        (i.value for i in identifiers if i.type == IdentifierType.RPPS.value),
        None,
    )
    
    return Practitioner(
        id=resource["id"],
        rpps=rpps,
        identifiers=identifiers,
        last_name=name.get("family") or "",
        first_name=" ".join(name.get("given") or []),
        prefix=" ".join(name.get("prefix") or []),
        suffix=" ".join(name.get("suffix") or []),
        qualifications=qualifications,
        active=resource.get("active") is not False,
    )


def parse_practitioner_role(resource: dict[str, Any]) -> PractitionerRole:
    specialties = [
        coding.get("display") or coding.get("code")
        for specialty in resource.get("specialty") or []
        for coding in specialty.get("coding") or []
        if coding.get("display") or coding.get("code")
    ]
    
    location = next(
        (
            c for c in resource.get("contained") or []
            if c.get("resourceType") == "Location" and c.get("address")
        ),
        None,
    )
    location_address = location["address"] if location else None
    
    return PractitionerRole(
        id=resource["id"],
        practitioner_id=reference_id(
            resource.get("practitioner"), ResourceType.PRACTITIONER.value
        ),
        organization_id=reference_id(
            resource.get("organization"), ResourceType.ORGANIZATION.value
        ),
        specialties=specialties,
        telecoms=_telecoms(resource),
        active=resource.get("active") is not False,
        address=format_address(location_address),
        city=(location_address or {}).get("city"),
        postal_code=(location_address or {}).get("postalCode"),
    )


def parse_organization(resource: dict[str, Any]) -> Organization:
    address = _first(resource.get("address")) or None
    type_coding = _first(_first(resource.get("type")).get("coding"))
    
    return Organization(
        id=resource["id"],
        name=resource.get("name") or "",
        type=type_coding.get("display") or "",
        address=format_address(address),
        city=(address or {}).get("city"),
        postal_code=(address or {}).get("postalCode"),
        telecoms=_telecoms(resource, with_use=False),
    )

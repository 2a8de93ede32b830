"""
FHIR reference parsing.

Accepts relative (`Practitioner/123`), versioned
(`Practitioner/123/_history/2`) and absolute
(`https://host/fhir/v2/Practitioner/123`) literal references.
"""

from dataclasses import dataclass
import re

from annuaire.errors import MalformedReferenceError

_RESOURCE_TYPE = re.compile(r"^[A-Z][A-Za-z]+$")
_RESOURCE_ID = re.compile(r"^[A-Za-z0-9\-.]{1,64}$")


@dataclass(frozen=True)
class Reference:
    resource_type: str
    id: str
    
    def __str__(self) -> str:
        return f"{self.resource_type}/{self.id}"


def parse_reference(value: str, expected_type: str | None = None) -> Reference:
    """
    Parse a literal reference.
    
    Raises:
        MalformedReferenceError: when the value has no type/id pair, or the
            type differs from expected_type
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedReferenceError(str(value), expected_type)
    
    path = value.strip().split("?", 1)[0].rstrip("/")
    segments = path.split("/")
    if len(segments) >= 4 and segments[-2] == "_history":
        segments = segments[:-2]
    if len(segments) < 2:
        raise MalformedReferenceError(value, expected_type)
    
    resource_type, resource_id = segments[-2], segments[-1]
    if not _RESOURCE_TYPE.match(resource_type) or not _RESOURCE_ID.match(resource_id):
        raise MalformedReferenceError(value, expected_type)
    if expected_type and resource_type != expected_type:
        raise MalformedReferenceError(value, expected_type)
    
    return Reference(resource_type=resource_type, id=resource_id)


def reference_id(field: dict | None, expected_type: str) -> str | None:
    """
    Id behind a Reference element, or None when the element is absent.
    
    A present but unparseable reference raises MalformedReferenceError.
    """
    if not field:
        return None
    literal = field.get("reference")
    if literal is None:
        return None
    return parse_reference(literal, expected_type).id

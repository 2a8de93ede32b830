"""
Annuaire Data Models

Flat records normalized from registry resources, and the search
request/response shapes built on top of them.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class IdentifierType(str, Enum):
    RPPS = "RPPS"
    ADELI = "ADELI"
    OTHER = "OTHER"


@dataclass
class Identifier:
    system: str | None
    value: str | None
    type: str = IdentifierType.OTHER.value


@dataclass
class Qualification:
    code: str | None = None
    display: str | None = None
    system: str | None = None


@dataclass
class ContactPoint:
    system: str | None = None
    value: str | None = None
    use: str | None = None


@dataclass
class Organization:
    id: str
    name: str = ""
    type: str = ""
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    telecoms: list[ContactPoint] = field(default_factory=list)


@dataclass
class PractitionerRole:
    id: str
    practitioner_id: str | None = None
    organization_id: str | None = None
    specialties: list[str] = field(default_factory=list)
    telecoms: list[ContactPoint] = field(default_factory=list)
    active: bool = True
    
    # From a contained Location, when the registry provides one
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    
    organization: Organization | None = None
    
    def attach_organization(self, organization: Organization) -> None:
        """
        Attach the resolved organization.
        
        Attaching the same organization again is a no-op; attaching a
        different one is refused so a role never changes owner.
        """
        if organization.id != self.organization_id:
            raise ValueError(
                f"Role {self.id} references {self.organization_id}, not {organization.id}"
            )
        if self.organization is None:
            self.organization = organization


@dataclass
class Practitioner:
    id: str
    rpps: str | None = None
    identifiers: list[Identifier] = field(default_factory=list)
    last_name: str = ""
    first_name: str = ""
    prefix: str = ""
    suffix: str = ""
    qualifications: list[Qualification] = field(default_factory=list)
    active: bool = True
    
    @classmethod
    def placeholder(cls, practitioner_id: str) -> "Practitioner":
        """Empty-named record for a practitioner referenced but not retrieved."""
        return cls(id=practitioner_id)


@dataclass
class MergedResult:
    """One practitioner with its roles and their organizations."""
    practitioner: Practitioner
    roles: list[PractitionerRole] = field(default_factory=list)
    synthetic: bool = False
    
    @property
    def id(self) -> str:
        return self.practitioner.id
    
    def to_dict(self) -> dict[str, Any]:
        data = asdict(self.practitioner)
        data["roles"] = [asdict(role) for role in self.roles]
        data["synthetic"] = self.synthetic
        return data


@dataclass
class SearchQuery:
    """Inbound search fields; blank strings are treated as absent."""
    name: str | None = None
    city: str | None = None
    specialty: str | None = None
    specialty_code: str | None = None
    national_id: str | None = None
    count: int | None = None
    continuation_token: str | None = None
    
    def __post_init__(self):
        for name in ("name", "city", "specialty", "specialty_code", "national_id", "continuation_token"):
            value = getattr(self, name)
            if value is not None:
                value = value.strip()
                setattr(self, name, value or None)
    
    @property
    def has_post_filters(self) -> bool:
        return bool(self.city or self.specialty)


@dataclass
class SearchEnvelope:
    """Response of one logical search. Built once, never mutated after return."""
    results: list[MergedResult] = field(default_factory=list)
    upstream_total: int | None = None
    message: str | None = None
    continuation_token: str | None = None
    
    @property
    def total(self) -> int:
        return len(self.results)
    
    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"total": self.total}
        if self.upstream_total is not None:
            data["upstream_total"] = self.upstream_total
        data["results"] = [result.to_dict() for result in self.results]
        if self.message:
            data["message"] = self.message
        data["continuation_token"] = self.continuation_token
        return data

"""
FHIR Bundle Models

Thin typed view over searchset bundles returned by the registry.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ResourceType(str, Enum):
    """Registry resource types used by the search engine."""
    PRACTITIONER = "Practitioner"
    PRACTITIONER_ROLE = "PractitionerRole"
    ORGANIZATION = "Organization"


class BundleEntry(BaseModel):
    """One entry of a searchset bundle."""
    resource_type: str
    id: Optional[str] = None
    search_mode: Optional[str] = None
    resource: dict = Field(default_factory=dict)
    
    @classmethod
    def from_dict(cls, entry: dict) -> "BundleEntry":
        resource = entry.get("resource") or {}
        return cls(
            resource_type=resource.get("resourceType", "Unknown"),
            id=resource.get("id"),
            search_mode=(entry.get("search") or {}).get("mode"),
            resource=resource,
        )


class Bundle(BaseModel):
    """A FHIR searchset Bundle."""
    total: Optional[int] = None
    entries: list[BundleEntry] = Field(default_factory=list)
    next_link: Optional[str] = None
    
    @classmethod
    def from_dict(cls, data: dict) -> "Bundle":
        """Create from dictionary."""
        entries = [
            BundleEntry.from_dict(entry)
            for entry in data.get("entry") or []
            if "resource" in entry
        ]
        
        next_link = None
        for link in data.get("link") or []:
            if link.get("relation") == "next":
                next_link = link.get("url")
        
        return cls(
            total=data.get("total"),
            entries=entries,
            next_link=next_link,
        )
    
    def resources(self, resource_type: ResourceType | str) -> list[dict]:
        """Resources of one type, in bundle order."""
        wanted = resource_type.value if isinstance(resource_type, ResourceType) else resource_type
        return [entry.resource for entry in self.entries if entry.resource_type == wanted]
    
    @property
    def matches(self) -> list[BundleEntry]:
        """Entries matching the search, without _include'd resources."""
        return [e for e in self.entries if e.search_mode in (None, "match")]
    
    @property
    def is_empty(self) -> bool:
        return not self.matches

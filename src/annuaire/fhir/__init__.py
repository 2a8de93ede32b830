"""
FHIR access layer

Bundle models, reference parsing, resource normalization and the
registry client.
"""

from annuaire.fhir.client import RegistryClient
from annuaire.fhir.models import Bundle, BundleEntry, ResourceType
from annuaire.fhir.references import Reference, parse_reference

__all__ = [
    "RegistryClient",
    "Bundle",
    "BundleEntry",
    "ResourceType",
    "Reference",
    "parse_reference",
]

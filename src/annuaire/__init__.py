"""
Annuaire Santé search proxy

Stateless query fan-out over the Annuaire Santé FHIR registry:
practitioners, their roles and their organizations, fetched separately
and joined into one flat result list.
"""

__version__ = "0.1.0"

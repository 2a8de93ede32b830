"""
Annuaire Observability

Structured logging setup shared by the API and the search engine.
"""

from annuaire.observability.logging import configure_logging, redaction_processor

__all__ = ["configure_logging", "redaction_processor"]

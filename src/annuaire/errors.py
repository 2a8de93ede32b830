"""
Annuaire error taxonomy.

Validation errors are raised before any remote call. Upstream errors
abort the whole logical search; there is no partial-result degradation
and no retry.
"""


class AnnuaireError(Exception):
    """Base error for the search proxy."""
    
    kind = "error"
    status_code = 500
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
    
    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class SearchValidationError(AnnuaireError):
    """The request cannot be routed to any search strategy."""
    
    kind = "validation_error"
    status_code = 400


class InvalidContinuationToken(SearchValidationError):
    """Continuation token was not issued by this proxy for the configured registry."""
    pass


class UpstreamError(AnnuaireError):
    """The registry answered with a non-success status or an unreadable body."""
    
    kind = "upstream_error"
    status_code = 502
    
    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status
    
    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.upstream_status is not None:
            data["upstream_status"] = self.upstream_status
        return data


class MalformedReferenceError(AnnuaireError):
    """A resource reference could not be parsed into (type, id)."""
    
    kind = "malformed_reference"
    status_code = 502
    
    def __init__(self, reference: str, expected_type: str | None = None):
        expected = f" (expected {expected_type})" if expected_type else ""
        super().__init__(f"Malformed reference '{reference}'{expected}")
        self.reference = reference
        self.expected_type = expected_type


class PractitionerNotFound(AnnuaireError):
    """No practitioner exists under the requested id."""
    
    kind = "not_found"
    status_code = 404

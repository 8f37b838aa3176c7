"""
Domain error taxonomy raised by the service layer.

Each error carries a stable ``kind`` (used as the response ``error_code``)
and the HTTP status it maps to at the request boundary.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    kind = "DomainError"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidArgument(DomainError):
    """Malformed id or missing required field."""
    kind = "InvalidArgument"
    status_code = 400


class EmptyInput(InvalidArgument):
    kind = "EmptyInput"


class InvalidReference(InvalidArgument):
    """A referenced entity (e.g. an audio track) does not exist."""
    kind = "InvalidReference"


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, resource: str = "Resource", id: Optional[str] = None):
        message = f"{resource} not found" if not id else f"{resource} '{id}' not found"
        super().__init__(message, {"resource": resource, "id": id} if id else None)


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = 403


class InvalidStateTransition(DomainError):
    kind = "InvalidStateTransition"
    status_code = 409


class Conflict(DomainError):
    """Duplicate value for a unique field."""
    kind = "Conflict"
    status_code = 409

"""
Error taxonomy shared by the Record Store and the Sync Client.

Services raise these exceptions; the API layer renders them as the
failure envelope ``{"success": false, "error": {...}}`` with the HTTP
status attached to each class.  The module has no FastAPI
dependency; the replica imports it too.
"""

from typing import Any, Dict, List, Optional

import pydantic


class GymDeskError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(GymDeskError):
    """Malformed or missing input.  Carries field-level ``details``."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(GymDeskError):
    """A uniqueness invariant would be violated."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(GymDeskError):
    """The referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidStateError(GymDeskError):
    """The operation is not permitted in the entity's current state."""

    code = "INVALID_STATE"
    status_code = 400


class UnavailableError(GymDeskError):
    """The Record Store could not be reached from the Sync Client."""

    code = "UNAVAILABLE"
    status_code = 503


def field_errors(exc: pydantic.ValidationError) -> List[Dict[str, Any]]:
    """Flatten a pydantic error into ``[{"field": ..., "message": ...}]``."""
    details = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(location), "message": err.get("msg", "")})
    return details


def validation_error(exc: pydantic.ValidationError, message: str = "Validation failed") -> ValidationError:
    """Convert a pydantic ``ValidationError`` into the domain one."""
    return ValidationError(message, details=field_errors(exc))

"""Domain errors raised by the services and mapped to HTTP responses in main."""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status and a stable kind."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str = "Validation error", details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class AuthenticationError(AppError):
    status_code = 401
    kind = "authentication_error"


class NotFoundError(AppError):
    status_code = 404
    kind = "not_found"


class ConflictError(AppError):
    status_code = 409
    kind = "conflict"


def validation_details(errors) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into ``[{field, message}]``."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return details

"""
Trail API Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every refusal the API can give.
Why:   Services raise exceptions; global handlers (registered in main.py)
       turn them into JSON responses with the right status code, so no
       service ever builds an HTTP response itself.
How:   Each exception carries a user-facing message and a context dict.
       Context is logged and, for client errors, returned as `details`.

Exception Hierarchy:
    TrailApiError (base)
    ├── ValidationError              → 400 Bad Request
    │   ├── MissingAttributeError    → 400 (required attribute absent)
    │   └── InvalidCursorError       → 400 (cursor could not be decoded)
    ├── UnauthenticatedError         → 401 Unauthorized
    ├── ForbiddenError               → 403 Forbidden (not the owner)
    ├── NotFoundError                → 404 Not Found (unprotected kinds)
    ├── ConflictError                → 403 Forbidden
    │   ├── AlreadyLinkedError       → edge already present
    │   └── RelationshipNotFoundError→ edge absent on removal
    ├── MethodNotAllowedError        → 405 Method Not Allowed
    └── StoreError                   → 500 Internal Server Error

Design Decision:
    Protected resources answer 403 both for "exists but belongs to someone
    else" and for "does not exist" so a caller cannot probe for ids owned by
    other users. Only unprotected kinds ever produce NotFoundError.
"""

from typing import Any, Dict, Iterable, Optional


class TrailApiError(Exception):
    """
    Base exception for all Trail API errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TrailApiError):
    """
    Raised when client input fails validation.

    When:    Wrong attribute type, enum value out of range, undecodable cursor.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MissingAttributeError(ValidationError):
    """
    Raised when a POST or PUT body lacks one or more required attributes.

    Why a subclass: POST/PUT must check completeness before anything else
    (including authentication), and the error names every missing attribute.
    """

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            message="The request object is missing at least one of the required attributes",
            context={"missing": self.missing},
        )


class InvalidCursorError(ValidationError):
    """Raised by a store adapter when a pagination cursor cannot be decoded."""

    def __init__(self, cursor: str):
        super().__init__(
            message="The pagination cursor is not valid",
            field="cursor",
            context={"cursor": cursor},
        )


class UnauthenticatedError(TrailApiError):
    """
    Raised when a protected operation has no verified identity.

    When:    Token absent, malformed, expired, wrong audience, or the identity
             provider could not be reached: all collapse to the same outcome.
    HTTP:    401 Unauthorized (with `WWW-Authenticate: Bearer`)
    """

    def __init__(
        self,
        message: str = "The user cannot be authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(TrailApiError):
    """
    Raised when the authenticated caller owns no entity with the given id.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The authenticated user owns no {resource} with this ID"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundError(TrailApiError):
    """
    Raised when a requested entity of an unprotected kind does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"No {resource} with this ID exists"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(TrailApiError):
    """
    Base for relationship state conflicts.

    HTTP:    403 Forbidden. The API contract reports edge conflicts with the
             same status as ownership refusals.
    """


class AlreadyLinkedError(ConflictError):
    """Raised when assigning a trailhead that is already linked to the trail."""

    def __init__(self, trail_id: int, trailhead_id: int):
        super().__init__(
            message="The trailhead is already assigned to this trail",
            context={"trail_id": trail_id, "trailhead_id": trailhead_id},
        )


class RelationshipNotFoundError(ConflictError):
    """Raised when removing a trailhead that is not linked to the trail."""

    def __init__(self, trail_id: int, trailhead_id: int):
        super().__init__(
            message="The trailhead is not assigned to this trail",
            context={"trail_id": trail_id, "trailhead_id": trailhead_id},
        )


class MethodNotAllowedError(TrailApiError):
    """
    Raised by catch-all routes for verbs a resource path does not support.

    HTTP:    405 Method Not Allowed, `Allow` header lists the permitted verbs.
    """

    def __init__(self, method: str, allowed: Iterable[str]):
        self.allowed = list(allowed)
        super().__init__(
            message=f"Method {method} is not allowed on this resource",
            context={"method": method, "allowed": self.allowed},
        )


class StoreError(TrailApiError):
    """
    Raised when the underlying entity store fails.

    HTTP:    500 Internal Server Error
    Security Note:
        The client always gets a generic message; the failing operation and
        driver error are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

"""
CookShare Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each failure kind a request can hit.
How:   Each exception carries a user-safe message and an optional context
       dict. Global exception handlers (registered in main.py) translate
       them into JSON error responses with the matching HTTP status code.
Who:   Raised by services and the membership store; caught by global handlers.

Exception Hierarchy:
    CookShareError (base)
    ├── ValidationError         → 400 Bad Request (missing/malformed field)
    ├── ConflictError           → 400 Bad Request (duplicate or wrong state)
    ├── PermissionDeniedError   → 403 Forbidden (membership/role/ownership)
    ├── NotFoundError           → 404 Not Found
    ├── StoreUnavailableError   → 503 Service Unavailable (database unreachable)
    └── DatabaseError           → 500 Internal Server Error

Reason codes:
    ConflictError and PermissionDeniedError carry a machine-readable
    `reason` (e.g. "already_member", "not_member") next to the message.
    Tests and clients branch on the reason, never on the message text.

Note:
    Denied visibility on a private group is NOT an error anywhere in this
    package. Listing posts of a private group as a non-member returns an
    empty list so that responses do not reveal which private groups exist.
"""

from typing import Any, Dict, Optional


class CookShareError(Exception):
    """
    Base exception for all CookShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only for 4xx details)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CookShareError):
    """
    Raised when client input fails a business validation rule.

    When:    Blank group name, missing creator id, blank post title,
             blank search query, blank comment text.
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


class ConflictError(CookShareError):
    """
    Raised when a request conflicts with the current membership or like state.

    Reasons:
        already_member, already_pending, no_pending_request,
        already_liked, not_liked, creator_cannot_leave, post_not_in_group
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class PermissionDeniedError(CookShareError):
    """
    Raised when a membership, role or ownership check fails.

    Reasons:
        not_member, admins_only, not_admin, not_creator,
        not_moderator, permission_denied
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Permission denied",
        reason: str = "permission_denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class NotFoundError(CookShareError):
    """
    Raised when a requested group, post, comment or join request does not exist.

    HTTP:    404 Not Found

    The store returns None for missing rows; services convert None into
    this exception so the route layer never checks for it.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class StoreUnavailableError(CookShareError):
    """
    Raised when the database cannot be reached.

    When:    Connection refused, connection dropped mid-query, pool timeout.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Database not available",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CookShareError):
    """
    Raised when a database operation fails for a reason other than connectivity.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. The original
        exception type is kept in context and logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

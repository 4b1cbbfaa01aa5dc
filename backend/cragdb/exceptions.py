"""
CragDB Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the failure kinds a caller can see.
How:   Each exception carries a user-facing message, a stable `code` and an
       optional context dict. REST exception handlers (main.py) and the GraphQL
       error extension (graphql/errors.py) translate them into responses.
Who:   Raised by services and the transactional orchestrator.

Exception Hierarchy:
    CragDBError (base)              code
    ├── ValidationError            VALIDATION_ERROR  → 400
    ├── ForbiddenError             FORBIDDEN         → 403
    ├── NotFoundError              NOT_FOUND         → 404
    ├── ConflictError              CONFLICT          → 409
    │   └── UniqueViolationError   CONFLICT          → 409
    └── DatabaseError              DATABASE_ERROR    → 500
"""

from typing import Any, Dict, Optional


class CragDBError(Exception):
    """
    Base exception for all CragDB application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CragDBError):
    """
    Raised when input fails a business rule before reaching persistence.

    Schema-level problems (wrong types, missing fields) are rejected earlier
    by pydantic / GraphQL; this covers rules that need domain knowledge,
    e.g. a route whose sector does not belong to the given crag.
    """

    code = "VALIDATION_ERROR"
    http_status = 400

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


class ForbiddenError(CragDBError):
    """Raised when the caller is authenticated but not allowed to act."""

    code = "FORBIDDEN"
    http_status = 403

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CragDBError):
    """
    Raised when a lookup by id or slug matches nothing.

    SQLAlchemy returns None for missing rows; services convert that into
    NotFoundError so the transport layer can answer with a typed failure.
    """

    code = "NOT_FOUND"
    http_status = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(CragDBError):
    """
    Raised on a constraint violation, or when the slug generator runs out
    of suffixes.

    Unique violations use the UniqueViolationError subclass: two concurrent
    writes racing for the same slug, or a club member added twice.
    """

    code = "CONFLICT"
    http_status = 409

    def __init__(
        self,
        message: str = "The resource conflicts with an existing one",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UniqueViolationError(ConflictError):
    """
    A unique constraint rejected the write (e.g. a slug taken by a concurrent
    create). Unlike other conflicts, re-running the create can succeed.
    """


class DatabaseError(CragDBError):
    """
    Raised when a database operation fails unexpectedly.

    The message returned to the client is always generic; the original
    error type is kept in `context` for the server-side log.
    """

    code = "DATABASE_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

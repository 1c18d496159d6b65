"""
Notely Backend - Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the auth boundary and note storage.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py turn them into structured
       JSON responses with the right status code.
Who:   Raised by services and the auth gate; caught by global handlers or,
       for AuthFailedError, by the OAuth callback route.

Exception Hierarchy:
    NotelyError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotAuthenticatedError    → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── AuthFailedError          → redirect to the client with ?error=auth
    ├── StorageError             → 500 Internal Server Error
    └── UpstreamError            → 500 Internal Server Error

The context dict is logged server-side and never returned to the client.
"""

from typing import Any, Dict, Optional


class NotelyError(Exception):
    """
    Base exception for all Notely application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotelyError):
    """
    Raised when client input fails a business rule.

    When:    Note text is missing or blank after trimming.
    HTTP:    400 Bad Request

    Schema-level problems (wrong JSON types) stay with FastAPI's own 422.
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


class NotAuthenticatedError(NotelyError):
    """
    Raised by the auth gate when no valid session backs the request.

    Covers a missing cookie, a tampered cookie, an unknown or expired session
    and a session whose user no longer exists. All look the same to the caller.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NotelyError):
    """
    Raised when a requested resource does not exist for the caller.

    For notes this is also raised when the note exists but belongs to
    someone else, so a 404 never confirms that an id is in use.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class AuthFailedError(NotelyError):
    """
    Raised when the identity provider exchange fails or is refused.

    The callback route converts this into a redirect to the client with an
    error marker. No User and no Session are created.
    """

    def __init__(
        self,
        reason: str = "authentication failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message="Sign-in failed. Please try again.", context=ctx)
        self.reason = reason


class StorageError(NotelyError):
    """
    Raised when a database operation fails unexpectedly.

    HTTP:    500 Internal Server Error

    The client only ever sees a generic message. SQL text, constraint names
    and driver errors go to the server log through the context dict.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamError(NotelyError):
    """
    Raised when the identity provider cannot be reached after all retries.

    HTTP:    500 Internal Server Error (outside the OAuth callback)
    """

    def __init__(
        self,
        message: str = "The sign-in provider is temporarily unavailable.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

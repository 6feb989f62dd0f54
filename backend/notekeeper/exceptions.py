"""
NoteKeeper Backend: Exception Hierarchy
========================================

What:  The errors the API can report, one class per HTTP outcome.
How:   Every error has a client-safe `message` and a `context` dict for the
       server log. main.register_exception_handlers() turns each class into
       the common JSON envelope.
Who:   Raised by services, stores and FastAPI dependencies.

    NoteKeeperError
    ├── ValidationError          400
    ├── AuthenticationError      401  (WWW-Authenticate: Bearer)
    ├── NotFoundError            404
    ├── ConflictError            409
    ├── RateLimitExceededError   429  (Retry-After)
    ├── DependencyError          502
    └── DatabaseError            500

Object storage problems during a note operation are not exceptions: the
gateway returns StorageFailure values (services/storage_base.py) and
NoteService degrades instead of failing. DependencyError covers a gateway
that cannot be built at all.
"""

from typing import Any, Dict, Optional


def _merge(context: Optional[Dict[str, Any]], **extra: Any) -> Dict[str, Any]:
    merged = dict(context or {})
    merged.update({key: value for key, value in extra.items() if value is not None})
    return merged


class NoteKeeperError(Exception):
    """
    Root of the hierarchy.

    Attributes:
        message: returned to the client as-is
        context: logged server-side; handlers decide whether to expose it
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(NoteKeeperError):
    """
    Client input was rejected.

    Examples: blank title or category, a non-image upload, a short password,
    an unknown request field.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=_merge(context, field=field))
        self.field = field


class AuthenticationError(NoteKeeperError):
    """
    The caller's identity could not be established.

    Covers missing, malformed, expired and revoked tokens as well as failed
    logins. A failed login never says whether the email or the password was
    wrong.
    """

    def __init__(
        self,
        message: str = "Could not validate credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteKeeperError):
    """
    Nothing with that id exists for this caller.

    A note owned by someone else is reported exactly like a missing one.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        else:
            message = f"The requested {resource} was not found"
        super().__init__(
            message=message,
            context=_merge(context, resource=resource, resource_id=resource_id),
        )


class ConflictError(NoteKeeperError):
    """A uniqueness rule would be broken (e.g. an email already registered)."""

    def __init__(
        self,
        message: str = "The resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=_merge(context, field=field))
        self.field = field


class DependencyError(NoteKeeperError):
    """An external service (object storage) is not usable."""

    def __init__(
        self,
        message: str = "An upstream service is unavailable. Please try again later.",
        dependency: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=_merge(context, dependency=dependency))
        self.dependency = dependency


class DatabaseError(NoteKeeperError):
    """
    A database call failed.

    Clients only ever see a generic message; the driver error type stays in
    `context`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteKeeperError):
    """Too many requests from one client IP inside the window."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests.",
            context=_merge(context, retry_after=retry_after),
        )
        self.retry_after = retry_after

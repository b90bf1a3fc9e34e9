"""
Mosaic Backend — Custom Exception Hierarchy
=============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Each exception maps to one HTTP status code; handlers never leak
       internal details to the client.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, dependencies and storage backends; caught by global handlers.

Exception Hierarchy:
    MosaicError (base)
    ├── ValidationError                → 400 Bad Request (client can fix)
    │   └── ImageDecodeError           → 400 Bad Request (not an image)
    ├── AuthenticationError            → 401 Unauthorized
    ├── NotFoundError                  → 404 Not Found
    ├── ConflictError                  → 409 Conflict
    ├── RateLimitExceededError         → 429 Too Many Requests
    ├── FileStorageError               → 500 Internal Server Error
    │   └── StorageObjectNotFoundError → 500 (object behind a reference is gone)
    └── DatabaseError                  → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MosaicError(Exception):
    """
    Base exception for all Mosaic application errors.

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


class ValidationError(MosaicError):
    """
    Raised when client input fails validation.

    When:    Missing image payload, malformed base64, oversized upload,
             bad registration data.
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


class ImageDecodeError(ValidationError):
    """
    Raised by the image normalizer when the payload is not a decodable image.

    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "The uploaded data is not a valid image.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field="image", context=context)


class AuthenticationError(MosaicError):
    """
    Raised when a request lacks a valid bearer token or login fails.

    HTTP:    401 Unauthorized (response carries WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MosaicError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown collection, collection not owned by the caller on delete,
             export of a collection without contributions.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(MosaicError):
    """
    Raised when a create would violate a uniqueness rule (e.g. duplicate email).

    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(MosaicError):
    """
    Raised when a storage backend operation fails.

    What:    Could not write or read an object on disk or in the bucket.
    HTTP:    500 Internal Server Error

    Recovery:
        - Log the error with full path/key and backend error for debugging
        - Return generic message to client (don't expose paths or bucket names)
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageObjectNotFoundError(FileStorageError):
    """
    Raised when a file reference no longer resolves to a stored object.

    The export assembler catches this (and any other FileStorageError raised
    while opening an object) and skips the entry.
    """

    def __init__(
        self,
        reference: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reference"] = reference
        super().__init__(message="Stored object was not found", context=ctx)
        self.reference = reference


class DatabaseError(MosaicError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MosaicError):
    """
    Raised when a client exceeds the contribution rate limit.

    When:    More than contribution_rate_limit_requests (default: 5) uploads
             inside contribution_rate_limit_window (default: 60 seconds).
    HTTP:    429 Too Many Requests, with a Retry-After header
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many contributions, please wait {retry_after} seconds before trying again."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after

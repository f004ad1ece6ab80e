"""Custom exception hierarchy for Linkshelf."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
    LINK_NOT_FOUND = "LINK_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Move errors
    NOT_OWNER_OF_SOURCE = "NOT_OWNER_OF_SOURCE"
    NO_CREATE_IN_DESTINATION = "NO_CREATE_IN_DESTINATION"
    CIRCULAR_MOVE = "CIRCULAR_MOVE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Identity & access
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class LinkshelfException(Exception):
    """
    Base exception for all Linkshelf errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class CollectionNotFoundError(LinkshelfException):
    """Collection does not exist, or the caller may not see it.

    Both cases produce the same error so that existence is not leaked.
    """

    def __init__(self, collection_id: int):
        super().__init__(
            f"Collection not found: {collection_id}",
            ErrorCode.COLLECTION_NOT_FOUND,
            status_code=404,
            details={"collection_id": collection_id}
        )


class LinkNotFoundError(LinkshelfException):
    """Link not found in database."""

    def __init__(self, link_id: int):
        super().__init__(
            f"Link not found: {link_id}",
            ErrorCode.LINK_NOT_FOUND,
            status_code=404,
            details={"link_id": link_id}
        )


class UserNotFoundError(LinkshelfException):
    """User not found in database."""

    def __init__(self, user_id: int):
        super().__init__(
            f"User not found: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id}
        )


class ValidationError(LinkshelfException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(LinkshelfException):
    """Request does not identify a known user."""

    def __init__(self, message: str = "Missing or unknown user identity"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(LinkshelfException):
    """Caller lacks owner/grant rights for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class NotOwnerOfSourceError(LinkshelfException):
    """Caller may not relocate the collection being moved."""

    def __init__(self, collection_id: int):
        super().__init__(
            "You can't move a collection you don't own or manage",
            ErrorCode.NOT_OWNER_OF_SOURCE,
            status_code=403,
            details={"collection_id": collection_id}
        )


class NoCreateInDestinationError(LinkshelfException):
    """Caller may not place collections inside the destination."""

    def __init__(self, destination_id: int):
        super().__init__(
            "You don't have permission to create collections in the destination",
            ErrorCode.NO_CREATE_IN_DESTINATION,
            status_code=403,
            details={"destination_id": destination_id}
        )


class CircularMoveError(LinkshelfException):
    """Destination lies inside the subtree being moved."""

    def __init__(self, collection_id: int, destination_id: int):
        super().__init__(
            f"Cannot move collection {collection_id} into its own subtree ({destination_id})",
            ErrorCode.CIRCULAR_MOVE,
            status_code=400,
            details={"collection_id": collection_id, "destination_id": destination_id}
        )


class DatabaseError(LinkshelfException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )


class InvariantViolation(Exception):
    """Stored data breaks a structural invariant (parent cycle, over-deep chain).

    Never rendered to clients. Callers log it and fail closed.
    """

    def __init__(self, message: str, collection_id: Optional[int] = None):
        super().__init__(message)
        self.collection_id = collection_id

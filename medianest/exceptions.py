"""Custom exception hierarchy for MediaNest."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Machine-readable codes shared by REST responses and RPC envelopes."""

    # Folder errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    SYSTEM_PROTECTED = "SYSTEM_PROTECTED"
    CYCLE = "CYCLE"

    # Item errors
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Transport errors
    UNKNOWN_ACTION = "UNKNOWN_ACTION"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MediaNestException(Exception):
    """Base for every error that reaches a client.

    Carries a message for people, an ``ErrorCode`` for programs, the HTTP
    status used by REST routes and RPC envelopes alike, and free-form details.
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
        """Body of the ``error`` member in a failure envelope."""
        return {"error": self.error_code.value, "message": self.message, "details": self.details}


class ValidationError(MediaNestException):
    """Validation failed for user input or a tree invariant.

    ``invariant`` names the broken tree rule (``empty-name``,
    ``duplicate-name``, ``cycle``, ``not-found``, ``system-protected``) when
    the failure comes from the tree store.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        invariant: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged: Dict[str, Any] = dict(details or {})
        if field:
            merged["field"] = field
        if invariant:
            merged["invariant"] = invariant
        super().__init__(message, error_code, status_code=status_code, details=merged)
        self.invariant = invariant


class NotFoundError(ValidationError):
    """An id did not resolve to a folder or item."""


class FolderNotFoundError(NotFoundError):
    """Folder id does not resolve."""

    def __init__(self, folder_id: int, field: str = "folder_id"):
        super().__init__(
            f"Folder not found: {folder_id}",
            field=field,
            invariant="not-found",
            error_code=ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id},
        )


class ItemNotFoundError(NotFoundError):
    """Item id does not resolve in the item store."""

    def __init__(self, item_id: int):
        super().__init__(
            f"Item not found: {item_id}",
            field="item_id",
            invariant="not-found",
            error_code=ErrorCode.ITEM_NOT_FOUND,
            status_code=404,
            details={"item_id": item_id},
        )


class SystemProtectedError(ValidationError):
    """Attempted to rename, move, or delete the system folder."""

    def __init__(self, folder_id: int, operation: str):
        super().__init__(
            f"System folders cannot be {operation}.",
            invariant="system-protected",
            error_code=ErrorCode.SYSTEM_PROTECTED,
            status_code=409,
            details={"folder_id": folder_id, "operation": operation},
        )


class CycleError(ValidationError):
    """Moving the folder would make it its own ancestor."""

    def __init__(self, folder_id: int, new_parent: int):
        if folder_id == new_parent:
            message = "Cannot move folder into itself."
        else:
            message = "Cannot move folder into its own subfolder."
        super().__init__(
            message,
            field="new_parent",
            invariant="cycle",
            error_code=ErrorCode.CYCLE,
            status_code=400,
            details={"folder_id": folder_id, "new_parent": new_parent},
        )


class UnknownActionError(MediaNestException):
    """RPC action name is not registered."""

    def __init__(self, action: str):
        super().__init__(
            f"Unknown action: {action}",
            ErrorCode.UNKNOWN_ACTION,
            status_code=404,
            details={"action": action},
        )


class AuthenticationError(MediaNestException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class PermissionDeniedError(MediaNestException):
    """Caller lacks the folder management capability."""

    def __init__(self, message: str = "You do not have permission to manage media folders."):
        super().__init__(
            message,
            ErrorCode.PERMISSION_DENIED,
            status_code=403,
        )


class DatabaseError(MediaNestException):
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

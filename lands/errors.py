"""Error taxonomy for land operations - every error is user-correctable."""

from __future__ import annotations


class LandError(ValueError):
    """Base class for all land errors."""
    code = "land_error"


class NotFoundError(LandError):
    """A referenced land, role or member does not exist."""
    code = "not_found"


class ConflictError(LandError):
    """Duplicate land name, existing member or role name collision."""
    code = "conflict"


class PermissionDeniedError(LandError):
    """The actor lacks the capability or hierarchy position for the action."""
    code = "permission_denied"


class InvalidOperationError(LandError):
    """A domain rule was violated (disconnected claim, owner role edits, ...)."""
    code = "invalid_operation"


class PreconditionFailedError(LandError):
    """The acting player has no land selected, or a pending plan went stale."""
    code = "precondition_failed"

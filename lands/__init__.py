"""Voxel lands: cuboid claims, contiguous territory and role-based permissions."""

from .errors import (
    LandError,
    NotFoundError,
    ConflictError,
    PermissionDeniedError,
    InvalidOperationError,
    PreconditionFailedError,
)
from .config import LandSettings

__version__ = "0.1.0"

__all__ = [
    "LandError",
    "NotFoundError",
    "ConflictError",
    "PermissionDeniedError",
    "InvalidOperationError",
    "PreconditionFailedError",
    "LandSettings",
]

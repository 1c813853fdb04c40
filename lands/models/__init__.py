"""Data models: regions, the adjacency graph, permissions, lands and events."""

from .region import Region, Point
from .permissions import LandPermission, LandRole, get_default_roles
from .land import Land, LandRecord, RegionRecord
from .events import Event, EventType, EventEffect

__all__ = [
    "Region",
    "Point",
    "LandPermission",
    "LandRole",
    "get_default_roles",
    "Land",
    "LandRecord",
    "RegionRecord",
    "Event",
    "EventType",
    "EventEffect",
]

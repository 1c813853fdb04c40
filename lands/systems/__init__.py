"""Core systems: land registry, player selections, and event logging."""

from .land_manager import LandManager, UnclaimPlan
from .selection import SelectionManager
from .event_log import EventLog

__all__ = ["LandManager", "UnclaimPlan", "SelectionManager", "EventLog"]

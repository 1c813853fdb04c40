"""Event schemas - chronological audit record of land activity."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
import uuid


class EventType(str, Enum):
    """Categories of events."""
    # Land lifecycle
    LAND_CREATED = "land_created"
    LAND_DELETED = "land_deleted"
    LAND_SELECTED = "land_selected"
    LAND_DESELECTED = "land_deselected"

    # Territory
    REGION_CLAIMED = "region_claimed"
    UNCLAIM_PROPOSED = "unclaim_proposed"
    UNCLAIM_CONFIRMED = "unclaim_confirmed"
    UNCLAIM_CANCELLED = "unclaim_cancelled"

    # Membership
    MEMBER_TRUSTED = "member_trusted"
    MEMBER_UNTRUSTED = "member_untrusted"
    MEMBER_ROLE_CHANGED = "member_role_changed"

    # Roles
    ROLE_CREATED = "role_created"
    ROLE_DELETED = "role_deleted"
    ROLE_UPDATED = "role_updated"

    # System
    SAVE = "save"
    LOAD = "load"
    COMMAND_REJECTED = "command_rejected"


class EventEffect(BaseModel):
    """A state change that resulted from an event."""
    target_type: str  # "region", "member", "role", ...
    target_id: Optional[str] = None
    field: str
    old_value: Any = None
    new_value: Any = None
    description: Optional[str] = None


class Event(BaseModel):
    """A recorded event in the land history."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: datetime = Field(default_factory=datetime.now)

    event_type: EventType
    description: str

    # Player (or "system") that caused it
    actor: str

    land_id: Optional[str] = None
    land_name: Optional[str] = None

    effects: list[EventEffect] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def summary(self) -> str:
        """Generate human-readable summary."""
        where = f" [{self.land_name}]" if self.land_name else ""
        return f"[{self.timestamp:%H:%M:%S}]{where} {self.actor}: {self.description}"

    def detailed(self) -> str:
        """Generate detailed event description."""
        lines = [
            f"Event: {self.event_type.value}",
            f"Time: {self.timestamp:%Y-%m-%d %H:%M:%S}",
            f"Actor: {self.actor}",
            f"Description: {self.description}",
        ]
        if self.land_name:
            lines.insert(2, f"Land: {self.land_name}")

        if self.effects:
            lines.append("Effects:")
            for effect in self.effects:
                change = f"{effect.old_value} → {effect.new_value}"
                lines.append(f"  - {effect.target_type}.{effect.field}: {change}")

        return "\n".join(lines)

"""Event log system - maintains chronological record of land activity."""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from lands.models.events import Event, EventType


class EventLog:
    """System for managing the land audit trail."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def add(self, event: Event) -> None:
        """Add an event to the log."""
        self._events.append(event)

    def get_recent(self, count: int = 10) -> list[Event]:
        """Get most recent events."""
        return self._events[-count:] if self._events and count > 0 else []

    def get_all(self) -> list[Event]:
        return list(self._events)

    def get_by_type(self, event_type: EventType) -> list[Event]:
        return [e for e in self._events if e.event_type == event_type]

    def get_by_actor(self, actor: str) -> list[Event]:
        return [e for e in self._events if e.actor == actor]

    def get_by_land(self, land_id: str) -> list[Event]:
        return [e for e in self._events if e.land_id == land_id]

    def get_since(self, when: datetime) -> list[Event]:
        return [e for e in self._events if e.timestamp >= when]

    def search(self, query: str) -> list[Event]:
        """Search events by description."""
        query_lower = query.lower()
        return [e for e in self._events if query_lower in e.description.lower()]

    def count(self) -> int:
        return len(self._events)

    def summary(self, count: int = 10) -> str:
        """Generate summary of recent events."""
        recent = self.get_recent(count)
        if not recent:
            return "No events recorded."
        return "\n".join(e.summary() for e in recent)

    def detailed_summary(self, count: int = 5) -> str:
        recent = self.get_recent(count)
        if not recent:
            return "No events recorded."

        lines = ["=== Recent Events ==="]
        for event in recent:
            lines.append("")
            lines.append(event.detailed())

        return "\n".join(lines)

    def export(self) -> list[dict]:
        """Export all events for serialization."""
        return [e.model_dump(mode="json") for e in self._events]

    def import_events(self, events_data: list[dict]) -> None:
        """Import events from serialized data."""
        self._events = [Event(**data) for data in events_data]

    def clear(self) -> None:
        self._events.clear()

    def generate_report(
        self,
        land_id: Optional[str] = None,
        actor_filter: Optional[str] = None,
    ) -> str:
        """Generate a filtered report of events, grouped by land."""
        events = self._events

        if land_id is not None:
            events = [e for e in events if e.land_id == land_id]

        if actor_filter:
            events = [e for e in events if e.actor == actor_filter]

        if not events:
            return "No events match the filter criteria."

        lines = [
            "=== Event Report ===",
            f"Events: {len(events)}",
            f"Period: {events[0].timestamp:%Y-%m-%d %H:%M} to {events[-1].timestamp:%Y-%m-%d %H:%M}",
            "",
        ]

        by_land: dict[str, list[Event]] = {}
        for event in events:
            by_land.setdefault(event.land_name or "(no land)", []).append(event)

        for name, grouped in by_land.items():
            lines.append(f"--- {name} ---")
            for event in grouped:
                lines.append(f"  [{event.actor}] {event.description}")

        return "\n".join(lines)

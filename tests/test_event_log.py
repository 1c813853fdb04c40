"""Tests for the event log."""

from datetime import datetime, timedelta

from lands.models.events import Event, EventEffect, EventType
from lands.systems.event_log import EventLog


def make_event(event_type=EventType.LAND_CREATED, actor="alice", land="Home", description="Created land"):
    return Event(
        event_type=event_type,
        description=description,
        actor=actor,
        land_id=land.lower() if land else None,
        land_name=land,
    )


def test_empty_log():
    log = EventLog()
    assert log.count() == 0
    assert log.get_recent() == []
    assert log.summary() == "No events recorded."
    assert log.generate_report() == "No events match the filter criteria."


def test_filters():
    log = EventLog()
    log.add(make_event())
    log.add(make_event(EventType.MEMBER_TRUSTED, actor="bob", description="Trusted carol"))
    log.add(make_event(EventType.LAND_CREATED, land="Farm", description="Created land"))

    assert log.count() == 3
    assert len(log.get_by_type(EventType.LAND_CREATED)) == 2
    assert [e.description for e in log.get_by_actor("bob")] == ["Trusted carol"]
    assert len(log.get_by_land("farm")) == 1
    assert len(log.search("CAROL")) == 1
    assert log.get_recent(2) == log.get_all()[1:]
    assert log.get_since(datetime.now() + timedelta(minutes=1)) == []


def test_export_import_round_trip():
    log = EventLog()
    event = make_event(EventType.REGION_CLAIMED, description="Claimed 1000 blocks")
    event.effects.append(EventEffect(target_type="land", target_id="home", field="volume",
                                     old_value=1000, new_value=2000))
    log.add(event)

    restored = EventLog()
    restored.import_events(log.export())

    (copy,) = restored.get_all()
    assert copy.id == event.id
    assert copy.event_type == EventType.REGION_CLAIMED
    assert copy.effects[0].new_value == 2000


def test_report_groups_by_land():
    log = EventLog()
    log.add(make_event())
    log.add(make_event(actor="bob", land="Farm"))
    log.add(make_event(EventType.SAVE, land=None, description="Saved"))

    report = log.generate_report()
    assert "Events: 3" in report
    assert "--- Home ---" in report
    assert "--- (no land) ---" in report

    only_bob = log.generate_report(actor_filter="bob")
    assert "Events: 1" in only_bob
    assert "Home" not in only_bob


def test_detailed_summary_lists_effects():
    log = EventLog()
    event = make_event(EventType.MEMBER_ROLE_CHANGED, description="Moved bob")
    event.effects.append(EventEffect(target_type="member", target_id="bob", field="role",
                                     old_value="member", new_value="admin"))
    log.add(event)

    text = log.detailed_summary()
    assert "Land: Home" in text
    assert "member.role: member → admin" in text

"""Tests for the AFK registry."""

from datetime import datetime, timedelta, timezone

from acephar.afk import (
    DEFAULT_AFK_REASON,
    AfkActivated,
    AfkDeactivated,
    AfkEntry,
    AfkRegistry,
)

JID = "254712345678@s.whatsapp.net"
OTHER = "254700000000@s.whatsapp.net"


def _fixed_clock(moment):
    return lambda: moment


def test_first_toggle_activates():
    moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    registry = AfkRegistry(clock=_fixed_clock(moment))

    result = registry.toggle(JID, "lunch")

    assert result == AfkActivated(timestamp=moment, reason="lunch")
    assert registry.is_afk(JID) is True
    assert registry.get(JID) == AfkEntry(jid=JID, timestamp=moment, reason="lunch")


def test_second_toggle_deactivates_with_previous_reason():
    registry = AfkRegistry()
    registry.toggle(JID, "gym")

    result = registry.toggle(JID, "ignored")

    assert isinstance(result, AfkDeactivated)
    assert result.previous_entry.reason == "gym"
    assert result.previous_entry.jid == JID
    assert registry.is_afk(JID) is False
    assert registry.get(JID) is None


def test_blank_reason_uses_default():
    registry = AfkRegistry()
    assert registry.toggle(JID, "").reason == DEFAULT_AFK_REASON
    registry.toggle(JID)
    assert registry.toggle(JID, "   ").reason == DEFAULT_AFK_REASON
    registry.toggle(JID)
    assert registry.toggle(JID, None).reason == DEFAULT_AFK_REASON


def test_entries_are_per_user():
    registry = AfkRegistry()
    registry.toggle(JID, "away")
    assert registry.is_afk(OTHER) is False
    registry.toggle(OTHER, "busy")
    assert len(registry) == 2
    registry.toggle(JID)
    assert registry.is_afk(JID) is False
    assert registry.get(OTHER).reason == "busy"


def test_elapsed_seconds():
    start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    entry = AfkEntry(jid=JID, timestamp=start)
    assert entry.elapsed_seconds(start + timedelta(minutes=5, seconds=3)) == 303
    assert entry.elapsed_seconds(start - timedelta(seconds=10)) == 0

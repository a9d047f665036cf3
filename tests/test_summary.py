"""Tests for the plain-text board summaries."""
from locus.schema import TaskRecord, Room, Status, Priority
from locus.store import BoardStore
from locus.summary import format_board, format_card, format_room_counts


def test_format_card_full():
    item = TaskRecord(
        id="v1", title="Rebalance", room=Room.VAULT, priority=Priority.HIGH,
        due="2026-11-01", tags=["money"], notes="Quarterly", source="notes.md:4",
    )
    text = format_card(item)
    assert text.splitlines()[0] == "🎯 v1: Rebalance"
    assert "🏦 The Vault" in text
    assert "📅 Due: 2026-11-01" in text
    assert "🏷️ Tags: money" in text
    assert text.endswith("📝 Source: notes.md:4")


def test_format_card_minimal():
    text = format_card(TaskRecord(id="g1", title="Someday"))
    assert "Due" not in text
    assert "Tags" not in text
    assert "🌱 The Garden" in text


def test_format_board_empty_columns():
    store = BoardStore([TaskRecord(id="1", title="Fence", room=Room.HEARTH, status=Status.BLOCKED)])
    store.set_filter("hearth")
    text = format_board(store)
    assert text.startswith("🏠 The Hearth")
    assert "🛑 blocked (1)" in text
    assert "   1: Fence (hearth, medium)" in text
    assert text.count("No items") == 3


def test_format_room_counts():
    assert format_room_counts({"vault": 2, "garden": 1}) == "By room:\n  vault: 2\n  garden: 1"

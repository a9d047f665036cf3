"""
Plain-text board summaries for the terminal.
"""
from typing import Dict

from .schema import TaskRecord, ROOMS, Room, ALL_ROOMS
from .store import BoardStore

STATUS_EMOJI = {
    "backlog": "📬",
    "in_progress": "🚀",
    "blocked": "🛑",
    "done": "✅",
}


def format_card(item: TaskRecord) -> str:
    """One card, several lines."""
    room = ROOMS[item.room]
    lines = [
        f"🎯 {item.id}: {item.title}",
        f"{room['icon']} {room['name']}",
        f"📊 Status: {item.status.value}",
        f"⚡ Priority: {item.priority.value}",
    ]
    if item.due:
        lines.append(f"📅 Due: {item.due}")
    if item.tags:
        lines.append(f"🏷️ Tags: {', '.join(item.tags)}")
    if item.notes:
        lines.append(item.notes)
    if item.source:
        lines.append(f"📝 Source: {item.source}")
    return "\n".join(lines)


def format_board(store: BoardStore) -> str:
    """Column-by-column listing of the filtered view."""
    if store.active_room == ALL_ROOMS:
        header = "📋 All rooms"
    else:
        room = ROOMS[Room(store.active_room)]
        header = f"{room['icon']} {room['name']}"

    lines = [header]
    for status, items in store.columns().items():
        lines.append("")
        lines.append(f"{STATUS_EMOJI[status.value]} {status.value} ({len(items)})")
        if not items:
            lines.append("   No items")
        for item in items:
            due = f"  [due {item.due}]" if item.due else ""
            lines.append(f"   {item.id}: {item.title} ({item.room.value}, {item.priority.value}){due}")
    return "\n".join(lines)


def format_room_counts(counts: Dict[str, int]) -> str:
    lines = ["By room:"]
    for room, count in counts.items():
        lines.append(f"  {room}: {count}")
    return "\n".join(lines)

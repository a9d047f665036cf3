"""
Rule-based room categorizer.

Maps free task text to one of the memory palace rooms by keyword matching.
Rules are checked in a fixed order and the first hit wins, so a title that
mentions both trading and a bot lands in the vault.
"""
from typing import List, Tuple

from .schema import Room


# Order matters: vault, then hearth, then workshop. Garden is the fallback.
ROOM_RULES: List[Tuple[Room, Tuple[str, ...]]] = [
    (Room.VAULT, ("trade", "stock", "portfolio", "market")),
    (Room.HEARTH, ("family", "kid", "home", "dawson", "cameron")),
    (Room.WORKSHOP, ("code", "bot", "api", "build", "script")),
]


def infer_room(text: str) -> Room:
    """Return the first room whose keywords appear in ``text`` (substring match)."""
    lower = (text or "").lower()
    for room, keywords in ROOM_RULES:
        if any(w in lower for w in keywords):
            return room
    return Room.GARDEN

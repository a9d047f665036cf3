"""
Event bridge: tells whatever renders the board that something changed.

The store never draws anything. It emits events and the view (CLI, HTTP
layer, tests) subscribes:

    board_changed   the filtered view is stale, re-render
    status_changed  a move was applied (item_id, old, new)
    sync_failed     an upstream write failed and the move was rolled back
    auth_required   a synced card was moved without a GitHub credential
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

BOARD_CHANGED = "board_changed"
STATUS_CHANGED = "status_changed"
SYNC_FAILED = "sync_failed"
AUTH_REQUIRED = "auth_required"


class BoardEvents:
    """Routes store notifications to subscribers."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers. A failing callback is logged and skipped."""
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

"""
Board state: the item collection, the active room filter, and status moves.

A move is the only mutation the board allows. For a GitHub-backed card it is
optimistic: the card changes column first, the upstream write follows, and a
failed write puts the card back where it was. Local cards are written
straight to LocalStorage.
"""
import logging
from typing import Dict, Iterable, List, Optional, Union

from .errors import AuthRequired
from .events import BoardEvents, BOARD_CHANGED, STATUS_CHANGED, SYNC_FAILED, AUTH_REQUIRED
from .github_sync import GitHubIssueAdapter
from .schema import TaskRecord, Room, Status, STATUSES, ALL_ROOMS
from .storage import LocalStorage, STORAGE_KEY, load_local_items

logger = logging.getLogger(__name__)


class BoardStore:
    """In-memory board with a room filter and a rollback-capable move path."""

    def __init__(
        self,
        items: Iterable[TaskRecord] = (),
        events: Optional[BoardEvents] = None,
        adapter: Optional[GitHubIssueAdapter] = None,
        storage: Optional[LocalStorage] = None,
        storage_key: str = STORAGE_KEY,
    ):
        self.items: List[TaskRecord] = list(items)
        self.events = events or BoardEvents()
        self.adapter = adapter
        self.storage = storage
        self.storage_key = storage_key
        self.active_room: str = ALL_ROOMS

    # ── Filter ────────────────────────────────────

    def set_filter(self, room: Union[Room, str]) -> None:
        """Select a room (or "all"). Unknown room names raise ValueError."""
        if isinstance(room, Room):
            value = room.value
        else:
            value = str(room).strip().lower()
            if value != ALL_ROOMS:
                value = Room(value).value
        self.active_room = value
        self.events.emit(BOARD_CHANGED, room=value)

    def filtered_items(self) -> List[TaskRecord]:
        if self.active_room == ALL_ROOMS:
            return list(self.items)
        return [item for item in self.items if item.room.value == self.active_room]

    def filtered_by_status(self, status: Union[Status, str]) -> List[TaskRecord]:
        """Items in the active room with this status, in store order."""
        if not isinstance(status, Status):
            status = Status(str(status).strip().lower())
        return [item for item in self.filtered_items() if item.status == status]

    def columns(self) -> Dict[Status, List[TaskRecord]]:
        return {status: self.filtered_by_status(status) for status in STATUSES}

    def count_by_status(self) -> Dict[str, int]:
        return {status.value: len(items) for status, items in self.columns().items()}

    # ── Lookup / replace ──────────────────────────

    def get(self, item_id: Union[str, int]) -> Optional[TaskRecord]:
        """Find an item by id. Issue ids are ints, HTTP/CLI ids arrive as strings."""
        key = str(item_id)
        for item in self.items:
            if str(item.id) == key:
                return item
        return None

    def replace_items(self, items: Iterable[TaskRecord]) -> None:
        self.items = list(items)
        self.events.emit(BOARD_CHANGED, room=self.active_room)

    # ── Moves ─────────────────────────────────────

    def move(self, item_id: Union[str, int], new_status: Union[Status, str]) -> bool:
        """Move an item to another column.

        Returns True when the move stuck. Returns False when it was refused
        (no GitHub credential) or rolled back (upstream write failed).
        Raises KeyError for an unknown id.
        A failed local save restores the old status and re-raises.
        """
        item = self.get(item_id)
        if item is None:
            raise KeyError(f"No item with id {item_id}")

        if not isinstance(new_status, Status):
            new_status = Status.from_str(new_status)

        if item.status == new_status:
            return True

        if item.is_synced:
            return self._move_synced(item, new_status)
        return self._move_local(item, new_status)

    def _move_local(self, item: TaskRecord, new_status: Status) -> bool:
        old_status = item.status
        item.status = new_status
        if self.storage is not None:
            try:
                self.storage.save_items(self.items, self.storage_key)
            except Exception:
                # Memory must match what is on disk
                item.status = old_status
                logger.error(f"Saving move of {item.id} failed; kept it in {old_status.value}")
                raise
        self.events.emit(STATUS_CHANGED, item_id=item.id, old=old_status, new=new_status)
        self.events.emit(BOARD_CHANGED, room=self.active_room)
        return True

    def _move_synced(self, item: TaskRecord, new_status: Status) -> bool:
        if self.adapter is None or not self.adapter.can_write:
            logger.info(f"Move of #{item.issue_number} refused: not signed in")
            self.events.emit(AUTH_REQUIRED, item_id=item.id)
            return False

        old_status = item.status
        item.status = new_status
        self.events.emit(BOARD_CHANGED, room=self.active_room)

        try:
            ok = self.adapter.update_status(item.issue_number, new_status)
        except AuthRequired:
            # Token dropped between the check and the write
            ok = False
        except Exception as e:
            logger.error(f"Upstream update of #{item.issue_number} raised: {e}")
            ok = False

        if not ok:
            item.status = old_status
            logger.warning(
                f"Upstream update of #{item.issue_number} to {new_status.value} failed; "
                f"rolled back to {old_status.value}"
            )
            self.events.emit(SYNC_FAILED, item_id=item.id, attempted=new_status, restored=old_status)
            self.events.emit(BOARD_CHANGED, room=self.active_room)
            return False

        self.events.emit(STATUS_CHANGED, item_id=item.id, old=old_status, new=new_status)
        return True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Loaders
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def load_local_board(
    storage: LocalStorage,
    data_file: str,
    scanned_file: Optional[str] = None,
    storage_key: str = STORAGE_KEY,
    events: Optional[BoardEvents] = None,
) -> BoardStore:
    items = load_local_items(storage, data_file, storage_key, scanned_file)
    return BoardStore(items, events=events, storage=storage, storage_key=storage_key)


def load_github_board(
    adapter: GitHubIssueAdapter,
    events: Optional[BoardEvents] = None,
) -> BoardStore:
    """Build a board from GitHub issues. Raises SyncError if the load fails."""
    return BoardStore(adapter.fetch_records(), events=events, adapter=adapter)


def make_adapter(cfg) -> GitHubIssueAdapter:
    return GitHubIssueAdapter(
        cfg.repo_owner,
        cfg.repo_name,
        token=cfg.github_token or None,
        api_base=cfg.github_api,
        timeout=cfg.request_timeout,
    )


def open_board(cfg, events: Optional[BoardEvents] = None,
               adapter: Optional[GitHubIssueAdapter] = None) -> BoardStore:
    """Board for the configured backend ("github" or "local")."""
    if cfg.backend == "github":
        return load_github_board(adapter or make_adapter(cfg), events=events)
    storage = LocalStorage(cfg.db_path)
    return load_local_board(
        storage,
        cfg.data_file,
        scanned_file=cfg.scan_output,
        storage_key=cfg.storage_key,
        events=events,
    )

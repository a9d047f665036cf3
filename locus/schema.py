"""
Task record schema for the memory palace board.

Every item on the board, whether it was scanned out of a markdown file or
loaded from a GitHub issue, is normalized into a TaskRecord.

Room, status and priority are closed sets. Unknown input values are coerced
to the default member instead of being rejected.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Dict, Any, Union


class Room(Enum):
    """Life-domain categories a task lives in."""
    VAULT = "vault"          # Trading, finance, investments
    HEARTH = "hearth"        # Family, home, personal
    WORKSHOP = "workshop"    # Tech projects and tools
    GARDEN = "garden"        # Ideas and someday/maybe
    ARCHIVE = "archive"      # Completed and reference

    @classmethod
    def from_str(cls, value: Any) -> "Room":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GARDEN


class Status(Enum):
    """Board columns, left to right."""
    BACKLOG = "backlog"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"

    @classmethod
    def from_str(cls, value: Any) -> "Status":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.BACKLOG


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_str(cls, value: Any) -> "Priority":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


STATUSES: List[Status] = list(Status)

ALL_ROOMS = "all"

ROOMS: Dict[Room, Dict[str, str]] = {
    Room.VAULT: {"name": "The Vault", "description": "Trading, finance, and investments", "icon": "🏦"},
    Room.HEARTH: {"name": "The Hearth", "description": "Family, home, and personal", "icon": "🏠"},
    Room.WORKSHOP: {"name": "The Workshop", "description": "Tech projects and tools", "icon": "🔧"},
    Room.GARDEN: {"name": "The Garden", "description": "Ideas and someday/maybe", "icon": "🌱"},
    Room.ARCHIVE: {"name": "The Archive", "description": "Completed and reference", "icon": "📜"},
}


def today_iso() -> str:
    return date.today().isoformat()


@dataclass
class TaskRecord:
    """One unit of work on the board.

    Only ``status`` changes after creation, and only through BoardStore.move().
    A record carrying an ``issue_number`` is backed by a GitHub issue; anything
    else is local.
    """

    id: Union[str, int]
    title: str

    # Classification
    room: Room = Room.GARDEN
    status: Status = Status.BACKLOG
    priority: Priority = Priority.MEDIUM

    # Scheduling
    due: Optional[str] = None      # ISO YYYY-MM-DD
    created: str = field(default_factory=today_iso)

    # Content
    tags: List[str] = field(default_factory=list)
    notes: str = ""

    # Provenance
    source: str = ""               # "file.md:12" or an issue URL
    url: Optional[str] = None
    issue_number: Optional[int] = None

    def __post_init__(self):
        self.title = (self.title or "").strip()
        if not self.title:
            raise ValueError("TaskRecord title must not be empty")
        if not isinstance(self.room, Room):
            self.room = Room.from_str(self.room)
        if not isinstance(self.status, Status):
            self.status = Status.from_str(self.status)
        if not isinstance(self.priority, Priority):
            self.priority = Priority.from_str(self.priority)

    @property
    def is_synced(self) -> bool:
        """True when the record mirrors a GitHub issue."""
        return self.issue_number is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "room": self.room.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "due": self.due,
            "tags": list(self.tags),
            "notes": self.notes,
            "created": self.created,
            "source": self.source,
        }
        if self.url:
            data["url"] = self.url
        if self.issue_number is not None:
            data["issueNumber"] = self.issue_number
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskRecord":
        """Deserialize, coercing unknown room/status/priority to defaults."""
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            tags = [str(tags)]

        issue_number = data.get("issueNumber", data.get("issue_number"))

        return cls(
            id=data["id"],
            title=data.get("title", ""),
            room=Room.from_str(data.get("room")),
            status=Status.from_str(data.get("status")),
            priority=Priority.from_str(data.get("priority")),
            due=data.get("due") or None,
            created=data.get("created") or today_iso(),
            tags=[str(t) for t in tags],
            notes=data.get("notes") or "",
            source=data.get("source") or "",
            url=data.get("url"),
            issue_number=int(issue_number) if issue_number is not None else None,
        )

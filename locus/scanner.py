"""
Memory file scanner.

Walks a directory of markdown notes and turns marker lines into TaskRecords:

    TODO: <text>
    FOLLOW-UP: <text> [due: YYYY-MM-DD]
    PROJECT: <text>
    IDEA: <text>

Unlike the board loaders, the scanner is strict: a note that cannot be read
aborts the whole run with ScanError. Scans are manual batch jobs, so a
partial result is worse than none.
"""
import json
import logging
import os
import random
import re
import string
import time
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple, Union

from .categorizer import infer_room
from .errors import ScanError
from .schema import TaskRecord, Room, Status, Priority, today_iso

logger = logging.getLogger(__name__)

SCAN_TAG = "auto-scan"
MARKDOWN_SUFFIX = ".md"

# marker token -> (status, priority, fixed room or None)
MARKERS: Dict[str, Tuple[Status, Priority, Optional[Room]]] = {
    "TODO:": (Status.BACKLOG, Priority.MEDIUM, None),
    "FOLLOW-UP:": (Status.BACKLOG, Priority.HIGH, None),
    "PROJECT:": (Status.BACKLOG, Priority.MEDIUM, None),
    "IDEA:": (Status.BACKLOG, Priority.LOW, Room.GARDEN),
}

DUE_RE = re.compile(r"\[due:\s*(\d{4}-\d{2}-\d{2})\]", re.IGNORECASE)
_DUE_STRIP_RE = re.compile(r"\s*\[due:\s*\d{4}-\d{2}-\d{2}\]\s*", re.IGNORECASE)

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_id() -> str:
    """scan-<ms timestamp>-<random suffix>, both base36."""
    suffix = "".join(random.choices(_BASE36, k=8))
    return f"scan-{_base36(int(time.time() * 1000))}-{suffix}"


def extract_due_date(text: str) -> Optional[str]:
    match = DUE_RE.search(text)
    return match.group(1) if match else None


def strip_due_date(text: str) -> str:
    """Remove the first [due: ...] annotation and the whitespace around it."""
    return _DUE_STRIP_RE.sub(" ", text, count=1).strip()


def scan_line(line: str, file_name: str, line_number: int,
              file_path: str = "", created: Optional[str] = None) -> List[TaskRecord]:
    """Records for every marker token found in one line (one per token)."""
    items = []
    for marker, (status, priority, room) in MARKERS.items():
        idx = line.find(marker)
        if idx == -1:
            continue

        text = line[idx + len(marker):].strip()
        if not text:
            continue

        due = extract_due_date(text)
        title = strip_due_date(text)
        if not title:
            continue

        items.append(TaskRecord(
            id=generate_id(),
            title=title,
            room=room or infer_room(title),
            status=status,
            priority=priority,
            due=due,
            source=f"{file_name}:{line_number}",
            notes=f"Auto-scanned from {file_path or file_name}",
            tags=[SCAN_TAG],
            created=created or today_iso(),
        ))
    return items


def scan_file(path: Union[str, Path], created: Optional[str] = None) -> List[TaskRecord]:
    """Scan a single markdown file. Raises ScanError if it cannot be read."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ScanError(f"Cannot read {path}: {e}") from e

    created = created or today_iso()
    items = []
    for index, line in enumerate(content.split("\n")):
        items.extend(scan_line(line, path.name, index + 1, str(path), created))
    return items


def _walk_markdown(root: Path):
    """Yield markdown files depth-first in sorted name order. Symlinks are not followed."""
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except OSError as e:
        raise ScanError(f"Cannot list {root}: {e}") from e

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_markdown(Path(entry.path))
        elif entry.is_file(follow_symlinks=False) and entry.name.endswith(MARKDOWN_SUFFIX):
            yield Path(entry.path)


def scan_directory(root: Union[str, Path]) -> List[TaskRecord]:
    """Scan every markdown file under ``root``.

    Order is traversal order, then line order within a file.
    """
    root = Path(root).expanduser()
    if not root.is_dir():
        raise ScanError(f"Not a directory: {root}")

    created = today_iso()
    items: List[TaskRecord] = []
    files = 0
    for md_file in _walk_markdown(root):
        items.extend(scan_file(md_file, created=created))
        files += 1

    logger.info(f"Scanned {files} files under {root}: {len(items)} items")
    return items


def write_scan_output(items: List[TaskRecord], output_file: Union[str, Path]) -> Path:
    """Write ``{"scannedItems": [...]}`` (pretty-printed)."""
    output = Path(output_file).expanduser()
    output.parent.mkdir(parents=True, exist_ok=True)
    payload = {"scannedItems": [item.to_dict() for item in items]}
    output.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return output


def read_scan_output(path: Union[str, Path]) -> List[TaskRecord]:
    """Load records written by write_scan_output()."""
    with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)
    return [TaskRecord.from_dict(raw) for raw in data.get("scannedItems", [])]


def count_by_room(items: List[TaskRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for item in items:
        counts[item.room.value] = counts.get(item.room.value, 0) + 1
    return counts

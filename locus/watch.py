"""
Re-scan the memory directory whenever a markdown note changes.
"""
import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ScanError
from .scanner import scan_directory, write_scan_output, MARKDOWN_SUFFIX

logger = logging.getLogger(__name__)


class MemoryChangeHandler(FileSystemEventHandler):
    """Calls ``on_change`` for markdown changes, debounced per path."""

    def __init__(self, on_change: Callable[[str], None], debounce_ms: int = 1000):
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self._last_seen: Dict[str, float] = {}

    def _debounce(self, path: str) -> bool:
        """True if this path hasn't been seen within the debounce window."""
        now = time.monotonic()
        last = self._last_seen.get(path)
        if last is not None and (now - last) < (self.debounce_ms / 1000):
            return False
        self._last_seen[path] = now
        return True

    def on_any_event(self, fs_event):
        if fs_event.is_directory:
            return
        path = str(fs_event.src_path)
        if not path.endswith(MARKDOWN_SUFFIX) or Path(path).name.startswith("."):
            return
        if self._debounce(path):
            self.on_change(path)


def rescan(memory_dir: str, output_file: str) -> Optional[int]:
    """Scan and rewrite the output. Returns the item count, None if the scan failed."""
    try:
        items = scan_directory(memory_dir)
    except ScanError as e:
        logger.error(f"Scan failed, keeping previous output: {e}")
        return None
    write_scan_output(items, output_file)
    return len(items)


def watch_and_scan(memory_dir: str, output_file: str, debounce_ms: int = 1000) -> None:
    """Block, re-scanning on every markdown change until Ctrl+C."""
    def _on_change(path: str):
        logger.info(f"Changed: {path}")
        count = rescan(memory_dir, output_file)
        if count is not None:
            logger.info(f"Wrote {count} items to {output_file}")

    handler = MemoryChangeHandler(_on_change, debounce_ms)
    observer = Observer()
    observer.schedule(handler, str(memory_dir), recursive=True)
    observer.start()
    logger.info(f"Watching {memory_dir}. Ctrl+C to stop.")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping...")
        observer.stop()
    observer.join()

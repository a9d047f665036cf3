"""
Locus command line.

Usage:
    locus scan [memory-dir] [output-file]     # scan notes for TODO:/FOLLOW-UP:/...
    locus scan --watch                        # keep re-scanning on changes
    locus board [--room vault] [--github]     # print the board
    locus move <id> <status> [--github]       # move a card
"""
import argparse
import logging
import sys
from typing import List, Optional

from .config import Config
from .errors import ScanError, SyncError
from .events import BoardEvents, SYNC_FAILED, AUTH_REQUIRED
from .scanner import scan_directory, write_scan_output, count_by_room
from .schema import Status, Room, ALL_ROOMS
from .store import open_board
from .summary import format_board, format_room_counts

logger = logging.getLogger("locus")


def _setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [locus] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def cmd_scan(cfg: Config, args) -> int:
    memory_dir = args.memory_dir or cfg.memory_dir
    output_file = args.output_file or cfg.scan_output

    if args.watch:
        from .watch import watch_and_scan
        watch_and_scan(memory_dir, output_file, cfg.scan_debounce_ms)
        return 0

    print(f"Scanning {memory_dir}...")
    try:
        items = scan_directory(memory_dir)
    except ScanError as e:
        logger.error(str(e))
        return 1

    print(f"Found {len(items)} items")
    out = write_scan_output(items, output_file)
    print(f"Wrote to {out}")
    print()
    print(format_room_counts(count_by_room(items)))
    return 0


def cmd_board(cfg: Config, args) -> int:
    try:
        store = open_board(cfg)
    except SyncError as e:
        logger.error(f"Failed to load data from GitHub: {e}")
        return 1
    if args.room:
        store.set_filter(args.room)
    print(format_board(store))
    return 0


def cmd_move(cfg: Config, args) -> int:
    events = BoardEvents()
    events.subscribe(AUTH_REQUIRED, lambda item_id: print(
        f"🔒 Card {item_id} is a GitHub issue. Set LOCUS_GITHUB_TOKEN (or sign in) to move it."
    ))
    events.subscribe(SYNC_FAILED, lambda item_id, attempted, restored: print(
        f"❌ GitHub rejected the move of {item_id} to {attempted.value}; "
        f"kept it in {restored.value}."
    ))

    try:
        store = open_board(cfg, events=events)
    except SyncError as e:
        logger.error(f"Failed to load data from GitHub: {e}")
        return 1

    try:
        ok = store.move(args.item_id, args.status)
    except KeyError:
        logger.error(f"No card with id {args.item_id}")
        return 1

    if ok:
        print(f"✅ {args.item_id} → {args.status}")
        return 0
    return 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="locus", description="Memory palace task board")
    ap.add_argument("--config", default=None, help="Path to config.yaml")
    ap.add_argument("-v", "--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan memory notes for action markers")
    scan.add_argument("memory_dir", nargs="?", default=None)
    scan.add_argument("output_file", nargs="?", default=None)
    scan.add_argument("--watch", action="store_true", help="Re-scan when notes change")
    scan.set_defaults(func=cmd_scan)

    board = sub.add_parser("board", help="Print the board")
    board.add_argument("--room", choices=[ALL_ROOMS] + [r.value for r in Room])
    board.add_argument("--github", action="store_true", help="Use GitHub Issues as the backend")
    board.set_defaults(func=cmd_board)

    move = sub.add_parser("move", help="Move a card to another column")
    move.add_argument("item_id")
    move.add_argument("status", choices=[s.value for s in Status])
    move.add_argument("--github", action="store_true", help="Use GitHub Issues as the backend")
    move.set_defaults(func=cmd_move)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    cfg = Config.load(args.config)
    if getattr(args, "github", False):
        cfg.backend = "github"

    return args.func(cfg, args)


if __name__ == "__main__":
    sys.exit(main())

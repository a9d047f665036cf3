#!/usr/bin/env python3
"""
Locus Board Server
------------------
JSON API over the memory palace board, backed either by the local SQLite
store or by GitHub Issues (see config.yaml `backend`).

Usage:
    python locus_server.py --config config.yaml
    locus-server --port 3000

API:
    GET  /api/board[?room=]              → { rooms, activeRoom, columns, counts }
    GET  /api/items[?room=&status=]      → { items, count }
    POST /api/filter                     → body { room }
    POST /api/items/<id>/status          → body { status }        (X-API-Key)
    POST /api/auth/token                 → body { code }
    POST /api/reload                     → reload from backend      (X-API-Key)
    GET  /health
"""
import argparse
import hmac
import logging
import sys
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, current_app

from locus.auth import exchange_code
from locus.config import Config
from locus.errors import SyncError, TokenExchangeError
from locus.events import BoardEvents, SYNC_FAILED, AUTH_REQUIRED
from locus.github_sync import GitHubIssueAdapter
from locus.schema import Room, Status, ALL_ROOMS
from locus.storage import load_rooms
from locus.store import BoardStore, open_board, make_adapter

logger = logging.getLogger("locus.server")


# ── Auth ─────────────────────────────────────────────────────────────────────

def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = current_app.config["LOCUS"].api_secret
        if not secret:
            return jsonify({"error": "API secret not set"}), 503
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── Board state ──────────────────────────────────────────────────────────────

class BoardHolder:
    """Owns the current BoardStore and remembers the last move notification."""

    def __init__(self, cfg: Config, adapter: Optional[GitHubIssueAdapter] = None,
                 board: Optional[BoardStore] = None):
        self.cfg = cfg
        self.adapter = adapter
        if self.adapter is None and cfg.backend == "github":
            self.adapter = make_adapter(cfg)
        self.events = BoardEvents()
        self.events.subscribe(SYNC_FAILED, self._on_sync_failed)
        self.events.subscribe(AUTH_REQUIRED, self._on_auth_required)
        self.last_notice: Optional[str] = None
        self.rooms = load_rooms(cfg.data_file)
        self.board = board
        if self.board is not None:
            self.board.events = self.events

    def _on_sync_failed(self, item_id, attempted, restored):
        self.last_notice = "sync_failed"

    def _on_auth_required(self, item_id):
        self.last_notice = "auth_required"

    def load(self) -> BoardStore:
        self.rooms = load_rooms(self.cfg.data_file)
        board = open_board(self.cfg, events=self.events, adapter=self.adapter)
        if self.board is None:
            self.board = board
        else:
            # Keep the active room across reloads
            self.board.replace_items(board.items)
        return self.board

    def get(self) -> BoardStore:
        if self.board is None:
            return self.load()
        return self.board


def _holder() -> BoardHolder:
    return current_app.config["LOCUS_BOARD"]


# ── App ──────────────────────────────────────────────────────────────────────

def create_app(cfg: Optional[Config] = None, adapter: Optional[GitHubIssueAdapter] = None,
               board: Optional[BoardStore] = None) -> Flask:
    cfg = cfg or Config.load()
    app = Flask(__name__)
    app.json.sort_keys = False  # keep board columns in workflow order
    app.config["LOCUS"] = cfg
    app.config["LOCUS_BOARD"] = BoardHolder(cfg, adapter=adapter, board=board)

    @app.errorhandler(SyncError)
    def handle_sync_error(e):
        logger.error(f"Board load failed: {e}")
        return jsonify({"error": "Failed to load data from GitHub", "details": str(e)}), 502

    @app.route("/api/board")
    def api_board():
        board = _holder().get()
        room = request.args.get("room")
        if room:
            try:
                board.set_filter(room)
            except ValueError:
                return jsonify({"error": f"Unknown room: {room}"}), 400

        columns = {
            status.value: [item.to_dict() for item in items]
            for status, items in board.columns().items()
        }
        return jsonify({
            "rooms": _holder().rooms,
            "activeRoom": board.active_room,
            "columns": columns,
            "counts": board.count_by_status(),
            "total": len(board.items),
        })

    @app.route("/api/items")
    def api_items():
        board = _holder().get()
        room = request.args.get("room", ALL_ROOMS).strip().lower()
        status = request.args.get("status")

        items = board.items
        if room != ALL_ROOMS:
            items = [i for i in items if i.room.value == room]
        if status:
            items = [i for i in items if i.status.value == status]
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})

    @app.route("/api/filter", methods=["POST"])
    def api_filter():
        data = request.get_json(force=True, silent=True) or {}
        room = str(data.get("room", "")).strip().lower()
        try:
            _holder().get().set_filter(room)
        except ValueError:
            return jsonify({"error": f"room must be 'all' or one of {[r.value for r in Room]}"}), 400
        return jsonify({"activeRoom": room})

    @app.route("/api/items/<item_id>/status", methods=["POST"])
    @require_api_key
    def api_move(item_id):
        data = request.get_json(force=True, silent=True) or {}
        raw_status = str(data.get("status", "")).strip().lower()
        try:
            new_status = Status(raw_status)
        except ValueError:
            return jsonify({"error": f"Invalid status: {raw_status}"}), 400

        holder = _holder()
        board = holder.get()
        holder.last_notice = None
        try:
            ok = board.move(item_id, new_status)
        except KeyError:
            return jsonify({"error": "Item not found"}), 404

        item = board.get(item_id)
        if ok:
            return jsonify({"item": item.to_dict()})
        if holder.last_notice == "auth_required":
            return jsonify({
                "error": "auth_required",
                "message": "Sign in with GitHub to move cards.",
            }), 403
        return jsonify({
            "error": "sync_failed",
            "message": "GitHub rejected the update; the card was moved back.",
            "item": item.to_dict(),
        }), 502

    @app.route("/api/auth/token", methods=["POST"])
    def api_token():
        data = request.get_json(force=True, silent=True) or {}
        holder = _holder()
        try:
            result = exchange_code(
                holder.cfg.token_exchange_url,
                str(data.get("code", "")).strip(),
                timeout=holder.cfg.request_timeout,
            )
        except TokenExchangeError as e:
            return jsonify({"error": str(e)}), 400

        if holder.adapter is None:
            holder.adapter = make_adapter(holder.cfg)
        holder.adapter.set_token(result["access_token"])
        if holder.board is not None and holder.board.adapter is None:
            holder.board.adapter = holder.adapter
        return jsonify({"authenticated": True, "scope": result["scope"]})

    @app.route("/api/reload", methods=["POST"])
    @require_api_key
    def api_reload():
        board = _holder().load()
        return jsonify({"total": len(board.items), "activeRoom": board.active_room})

    @app.route("/health")
    def health():
        holder = _holder()
        return jsonify({
            "status": "ok",
            "service": "locus",
            "backend": holder.cfg.backend,
            "authenticated": bool(holder.adapter and holder.adapter.can_write),
        })

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Locus Board Server")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--github", action="store_true", help="Use GitHub Issues as the backend")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [locus] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    cfg = Config.load(args.config)
    if args.github:
        cfg.backend = "github"

    app = create_app(cfg)
    logger.info(f"Locus server on http://{args.host}:{args.port} (backend={cfg.backend})")
    app.run(host=args.host, port=args.port, debug=False, threaded=False)


if __name__ == "__main__":
    main()

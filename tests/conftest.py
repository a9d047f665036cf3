"""Shared fixtures for the Locus tests."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Make locus_server importable without installing the project
sys.path.insert(0, str(Path(__file__).parent.parent))

from locus.config import Config


def make_response(status: int = 200, payload=None):
    """Stand-in for requests.Response."""
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 300
    r.json.return_value = payload if payload is not None else {}
    return r


def make_issue(number, title="Issue", labels=(), state="open", body="", created_at="2026-09-01T12:00:00Z"):
    return {
        "number": number,
        "title": title,
        "labels": [{"name": l} for l in labels],
        "state": state,
        "body": body,
        "created_at": created_at,
        "html_url": f"https://github.com/justinpreston/locus/issues/{number}",
    }


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "projects.json"
    path.write_text(json.dumps({
        "rooms": {},
        "items": [
            {"id": "a", "title": "Buy index funds", "room": "vault", "status": "backlog"},
            {"id": "b", "title": "Fix the fence", "room": "hearth", "status": "in_progress"},
            {"id": "c", "title": "Ship scanner", "room": "workshop", "status": "backlog"},
            {"id": "d", "title": "Old notes", "room": "archive", "status": "done"},
        ],
    }))
    return path


@pytest.fixture
def local_config(tmp_path, data_file):
    return Config(
        backend="local",
        data_file=str(data_file),
        db_path=str(tmp_path / "locus.db"),
        scan_output=str(tmp_path / "scanned.json"),
        memory_dir=str(tmp_path / "memory"),
        api_secret="s3cret",
    )

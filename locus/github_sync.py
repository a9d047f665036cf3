"""
GitHub Issues backend for the board.

Structured fields travel as labels and bold markdown lines in the issue body:

    labels:  room:<room>  status:<status>  priority:<priority>
    body:    **Due:** YYYY-MM-DD
             **Tags:** a, b, c

The prefixes and body patterns are a wire format shared with the issues
themselves. Keep them exactly as they are.

Inbound, every load rebuilds all records from the two issue listings (open
and closed). Outbound, the only thing ever written back is a status change.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import requests

from .errors import AuthRequired, SyncError
from .schema import TaskRecord, Room, Status, Priority, today_iso

logger = logging.getLogger(__name__)

DEFAULT_API = "https://api.github.com"
PER_PAGE = 100

ROOM_PREFIX = "room:"
STATUS_PREFIX = "status:"
PRIORITY_PREFIX = "priority:"

DUE_FIELD_RE = re.compile(r"\*\*Due:\*\*\s*(\d{4}-\d{2}-\d{2})")
TAGS_FIELD_RE = re.compile(r"\*\*Tags:\*\*\s*(.+)")
_DUE_LINE_RE = re.compile(r"\*\*Due:\*\*.+")
_TAGS_LINE_RE = re.compile(r"\*\*Tags:\*\*.+")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Inbound mapping
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def label_names(labels: Iterable[Union[str, Dict[str, Any]]]) -> List[str]:
    """GitHub returns label objects; accept bare strings too."""
    names = []
    for label in labels or []:
        if isinstance(label, dict):
            name = label.get("name")
        else:
            name = label
        if name:
            names.append(str(name))
    return names


def _label_value(labels: List[str], prefix: str) -> Optional[str]:
    for label in labels:
        if label.startswith(prefix):
            return label[len(prefix):]
    return None


def parse_body(body: Optional[str]) -> Tuple[Optional[str], List[str], str]:
    """Split an issue body into (due, tags, notes)."""
    body = body or ""

    due_match = DUE_FIELD_RE.search(body)
    due = due_match.group(1) if due_match else None

    tags_match = TAGS_FIELD_RE.search(body)
    tags = []
    if tags_match:
        tags = [t.strip() for t in tags_match.group(1).split(",") if t.strip()]

    notes = _TAGS_LINE_RE.sub("", _DUE_LINE_RE.sub("", body)).strip()
    return due, tags, notes


def issue_to_record(issue: Dict[str, Any]) -> TaskRecord:
    """Map one GitHub issue payload to a TaskRecord.

    A closed issue is always ``done``, whatever its status label says.
    """
    labels = label_names(issue.get("labels", []))

    room = Room.from_str(_label_value(labels, ROOM_PREFIX))
    status = Status.from_str(_label_value(labels, STATUS_PREFIX))
    if issue.get("state") == "closed":
        status = Status.DONE
    priority = Priority.from_str(_label_value(labels, PRIORITY_PREFIX))

    due, tags, notes = parse_body(issue.get("body"))

    created_at = issue.get("created_at") or ""
    number = issue["number"]
    url = issue.get("html_url") or ""

    return TaskRecord(
        id=number,
        title=issue.get("title", ""),
        room=room,
        status=status,
        priority=priority,
        due=due,
        tags=tags,
        notes=notes,
        created=created_at.split("T")[0] if created_at else today_iso(),
        source=url,
        url=url or None,
        issue_number=number,
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Outbound mapping
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def plan_label_update(current: List[str], new_status: Status) -> Tuple[List[str], List[str]]:
    """Return (replacement label set, stale status labels removed)."""
    new_label = f"{STATUS_PREFIX}{new_status.value}"
    stale = [l for l in current if l.startswith(STATUS_PREFIX) and l != new_label]
    labels = [l for l in current if l not in stale]
    if new_label not in labels:
        labels.append(new_label)
    return labels, stale


class GitHubIssueAdapter:
    """Reads issues into TaskRecords and pushes status moves back."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        api_base: str = DEFAULT_API,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.token = token or None
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def issues_url(self) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.repo}/issues"

    @property
    def can_write(self) -> bool:
        return bool(self.token)

    def set_token(self, token: Optional[str]) -> None:
        self.token = token or None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # ── Load ──────────────────────────────────────

    def _list_issues(self, state: str) -> List[Dict[str, Any]]:
        try:
            r = self.session.get(
                self.issues_url,
                params={"state": state, "per_page": PER_PAGE},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SyncError(f"Failed to fetch {state} issues: {e}") from e
        if not r.ok:
            raise SyncError(f"Failed to fetch {state} issues: HTTP {r.status_code}")
        try:
            issues = r.json()
        except ValueError as e:
            raise SyncError(f"Failed to fetch {state} issues: bad JSON ({e})") from e
        if not isinstance(issues, list):
            raise SyncError(f"Failed to fetch {state} issues: expected a list")
        return issues

    def fetch_issues(self) -> List[Dict[str, Any]]:
        """Open and closed issues, fetched concurrently. Either failing aborts."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            open_future = pool.submit(self._list_issues, "open")
            closed_future = pool.submit(self._list_issues, "closed")
            open_issues = open_future.result()
            closed_issues = closed_future.result()
        return list(open_issues) + list(closed_issues)

    def fetch_records(self) -> List[TaskRecord]:
        issues = self.fetch_issues()
        # The issues endpoint also lists pull requests
        try:
            records = [issue_to_record(i) for i in issues if "pull_request" not in i]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SyncError(f"Malformed issue in {self.owner}/{self.repo}: {e}") from e
        logger.info(f"Loaded {len(records)} issues from {self.owner}/{self.repo}")
        return records

    # ── Status push ───────────────────────────────

    def _patch(self, issue_number: int, body: Dict[str, Any]) -> bool:
        url = f"{self.issues_url}/{issue_number}"
        try:
            r = self.session.patch(url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"PATCH issue #{issue_number} failed: {e}")
            return False
        if not r.ok:
            logger.warning(f"PATCH issue #{issue_number} rejected: HTTP {r.status_code}")
            return False
        return True

    def _get_issue(self, issue_number: int) -> Optional[Dict[str, Any]]:
        url = f"{self.issues_url}/{issue_number}"
        try:
            r = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"GET issue #{issue_number} failed: {e}")
            return None
        if not r.ok:
            logger.warning(f"GET issue #{issue_number} rejected: HTTP {r.status_code}")
            return None
        try:
            issue = r.json()
        except ValueError as e:
            logger.warning(f"GET issue #{issue_number} returned bad JSON: {e}")
            return None
        if not isinstance(issue, dict):
            logger.warning(f"GET issue #{issue_number} returned {type(issue).__name__}, expected an object")
            return None
        return issue

    def close_issue(self, issue_number: int) -> bool:
        return self._patch(issue_number, {"state": "closed"})

    def update_status_label(self, issue_number: int, new_status: Status) -> bool:
        """Read the current labels, swap the status label, write the full set back."""
        issue = self._get_issue(issue_number)
        if issue is None:
            return False

        labels, stale = plan_label_update(label_names(issue.get("labels", [])), new_status)
        body: Dict[str, Any] = {"labels": labels}
        if new_status != Status.DONE and issue.get("state") == "closed":
            # A closed issue always loads as done; reopen it or the move won't stick
            body["state"] = "open"

        if stale:
            logger.debug(f"Issue #{issue_number}: dropping {stale}")
        return self._patch(issue_number, body)

    def update_status(self, issue_number: int, new_status: Union[Status, str]) -> bool:
        """Push a status move upstream. Returns False if any request failed.

        Moving to done closes the issue first, then updates labels. Both are
        attempted. A failed label write does not reopen the issue.
        """
        if not self.can_write:
            raise AuthRequired()

        if not isinstance(new_status, Status):
            new_status = Status.from_str(new_status)

        ok = True
        if new_status == Status.DONE:
            ok = self.close_issue(issue_number)
        if not self.update_status_label(issue_number, new_status):
            ok = False
        return ok

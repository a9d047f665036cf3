"""
Tests for the GitHub Issues adapter: label/body mapping and status pushes.
"""
from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response, make_issue
from locus.errors import AuthRequired, SyncError
from locus.github_sync import (
    GitHubIssueAdapter,
    issue_to_record,
    label_names,
    parse_body,
    plan_label_update,
)
from locus.schema import Room, Status, Priority


def _adapter(session, token="tok"):
    return GitHubIssueAdapter("justinpreston", "locus", token=token, session=session)


def _http_calls(session):
    return [name for name, _args, _kwargs in session.mock_calls if name in ("get", "patch")]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Inbound mapping
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestIssueToRecord:

    def test_labels_map_to_fields(self):
        issue = make_issue(3, labels=["room:hearth", "status:blocked", "priority:high"])
        item = issue_to_record(issue)
        assert item.room == Room.HEARTH
        assert item.status == Status.BLOCKED
        assert item.priority == Priority.HIGH

    def test_closed_issue_is_done_regardless_of_label(self):
        issue = make_issue(3, labels=["room:hearth", "status:blocked", "priority:high"], state="closed")
        item = issue_to_record(issue)
        assert item.status == Status.DONE
        assert item.room == Room.HEARTH
        assert item.priority == Priority.HIGH

    def test_defaults_without_labels(self):
        item = issue_to_record(make_issue(1))
        assert item.room == Room.GARDEN
        assert item.status == Status.BACKLOG
        assert item.priority == Priority.MEDIUM
        assert item.tags == []
        assert item.due is None

    def test_first_matching_label_wins(self):
        item = issue_to_record(make_issue(1, labels=["bug", "room:vault", "room:hearth"]))
        assert item.room == Room.VAULT

    def test_unknown_label_values_are_coerced(self):
        item = issue_to_record(make_issue(1, labels=["room:attic", "status:review", "priority:p0"]))
        assert item.room == Room.GARDEN
        assert item.status == Status.BACKLOG
        assert item.priority == Priority.MEDIUM

    def test_direct_fields(self):
        item = issue_to_record(make_issue(42, title="Pay taxes", created_at="2026-04-01T09:30:00Z"))
        assert item.id == 42
        assert item.issue_number == 42
        assert item.title == "Pay taxes"
        assert item.created == "2026-04-01"
        assert item.url == "https://github.com/justinpreston/locus/issues/42"
        assert item.source == item.url
        assert item.is_synced

    def test_body_fields(self):
        body = "Quarterly estimate.\n\n**Due:** 2026-04-15\n**Tags:** taxes, money , \n\nBring receipts."
        item = issue_to_record(make_issue(1, body=body))
        assert item.due == "2026-04-15"
        assert item.tags == ["taxes", "money"]
        assert item.notes == "Quarterly estimate.\n\n\n\n\nBring receipts."

    def test_null_body(self):
        issue = make_issue(1)
        issue["body"] = None
        item = issue_to_record(issue)
        assert item.notes == ""


def test_parse_body_without_fields():
    assert parse_body("  just notes  ") == (None, [], "just notes")


def test_label_names_accepts_objects_and_strings():
    assert label_names([{"name": "room:vault"}, "status:done", {"color": "fff"}]) == ["room:vault", "status:done"]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Label planning
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_plan_label_update_swaps_status():
    labels, stale = plan_label_update(["room:vault", "status:backlog", "status:blocked"], Status.IN_PROGRESS)
    assert stale == ["status:backlog", "status:blocked"]
    assert labels == ["room:vault", "status:in_progress"]


def test_plan_label_update_no_duplicate():
    labels, stale = plan_label_update(["status:done", "priority:low"], Status.DONE)
    assert stale == []
    assert labels == ["status:done", "priority:low"]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Loading
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestFetch:

    def test_fetches_open_and_closed(self):
        session = MagicMock()

        def fake_get(url, params=None, **kwargs):
            if params["state"] == "open":
                return make_response(200, [make_issue(1, labels=["status:in_progress"])])
            return make_response(200, [make_issue(2, labels=["status:backlog"], state="closed")])

        session.get.side_effect = fake_get
        records = _adapter(session, token=None).fetch_records()

        assert [r.id for r in records] == [1, 2]
        assert records[0].status == Status.IN_PROGRESS
        assert records[1].status == Status.DONE
        states = sorted(c.kwargs["params"]["state"] for c in session.get.call_args_list)
        assert states == ["closed", "open"]
        assert all(c.kwargs["params"]["per_page"] == 100 for c in session.get.call_args_list)

    def test_either_failure_aborts(self):
        session = MagicMock()

        def fake_get(url, params=None, **kwargs):
            if params["state"] == "closed":
                return make_response(500)
            return make_response(200, [make_issue(1)])

        session.get.side_effect = fake_get
        with pytest.raises(SyncError):
            _adapter(session).fetch_records()

    def test_network_error_aborts(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(SyncError):
            _adapter(session).fetch_records()

    def test_non_json_listing_is_sync_error(self):
        session = MagicMock()
        bad = make_response(200)
        bad.json.side_effect = ValueError("not json")
        session.get.return_value = bad
        with pytest.raises(SyncError):
            _adapter(session).fetch_records()

    def test_listing_must_be_a_list(self):
        session = MagicMock()
        session.get.return_value = make_response(200, {"message": "Moved"})
        with pytest.raises(SyncError):
            _adapter(session).fetch_records()

    def test_malformed_issue_is_sync_error(self):
        session = MagicMock()
        session.get.return_value = make_response(200, [{"title": "no number"}])
        with pytest.raises(SyncError):
            _adapter(session).fetch_records()

    def test_pull_requests_skipped(self):
        session = MagicMock()
        pr = make_issue(9)
        pr["pull_request"] = {"url": "..."}

        def fake_get(url, params=None, **kwargs):
            if params["state"] == "open":
                return make_response(200, [make_issue(1), pr])
            return make_response(200, [])

        session.get.side_effect = fake_get
        assert [r.id for r in _adapter(session).fetch_records()] == [1]

    def test_token_sent_as_bearer(self):
        session = MagicMock()
        session.get.return_value = make_response(200, [])
        _adapter(session, token="abc").fetch_records()
        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer abc"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Status push
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestUpdateStatus:

    def test_requires_token_before_any_request(self):
        session = MagicMock()
        with pytest.raises(AuthRequired):
            _adapter(session, token=None).update_status(5, Status.DONE)
        assert session.mock_calls == []

    def test_label_replacement(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5, labels=["room:vault", "status:backlog"]))]
        session.patch.side_effect = [make_response(200)]

        assert _adapter(session).update_status(5, Status.BLOCKED)

        assert _http_calls(session) == ["get", "patch"]
        patch = session.patch.call_args
        assert patch.args[0].endswith("/repos/justinpreston/locus/issues/5")
        assert patch.kwargs["json"] == {"labels": ["room:vault", "status:blocked"]}

    def test_done_closes_before_labels(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5, labels=["status:in_progress"]))]
        session.patch.side_effect = [make_response(200), make_response(200)]

        assert _adapter(session).update_status(5, "done")

        assert _http_calls(session) == ["patch", "get", "patch"]
        first, second = session.patch.call_args_list
        assert first.kwargs["json"] == {"state": "closed"}
        assert second.kwargs["json"] == {"labels": ["status:done"]}

    def test_label_failure_after_close_reports_failure(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5, labels=["status:backlog"]))]
        session.patch.side_effect = [make_response(200), make_response(422)]

        assert not _adapter(session).update_status(5, Status.DONE)
        # The close is not undone
        assert _http_calls(session) == ["patch", "get", "patch"]

    def test_labels_attempted_even_if_close_fails(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5))]
        session.patch.side_effect = [make_response(403), make_response(200)]

        assert not _adapter(session).update_status(5, Status.DONE)
        assert _http_calls(session) == ["patch", "get", "patch"]

    def test_read_failure(self):
        session = MagicMock()
        session.get.side_effect = [make_response(404)]
        assert not _adapter(session).update_status(5, Status.BLOCKED)
        session.patch.assert_not_called()

    def test_non_json_issue_is_failure(self):
        session = MagicMock()
        bad = make_response(200)
        bad.json.side_effect = ValueError("not json")
        session.get.side_effect = [bad]
        assert not _adapter(session).update_status(5, Status.BLOCKED)
        session.patch.assert_not_called()

    def test_network_error_is_failure(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5))]
        session.patch.side_effect = requests.Timeout("slow")
        assert not _adapter(session).update_status(5, Status.IN_PROGRESS)

    def test_moving_closed_issue_out_of_done_reopens(self):
        session = MagicMock()
        session.get.side_effect = [make_response(200, make_issue(5, labels=["status:done"], state="closed"))]
        session.patch.side_effect = [make_response(200)]

        assert _adapter(session).update_status(5, Status.IN_PROGRESS)
        assert session.patch.call_args.kwargs["json"] == {
            "labels": ["status:in_progress"],
            "state": "open",
        }

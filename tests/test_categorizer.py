"""Tests for keyword-based room inference."""
import pytest

from locus.categorizer import infer_room
from locus.schema import Room


@pytest.mark.parametrize("text,room", [
    ("Review stock picks", Room.VAULT),
    ("Check MARKET open", Room.VAULT),
    ("Pick up kids from school", Room.HEARTH),
    ("Fix home wifi", Room.HEARTH),
    ("Write deploy script", Room.WORKSHOP),
    ("Add API pagination", Room.WORKSHOP),
    ("Learn watercolor", Room.GARDEN),
    ("", Room.GARDEN),
])
def test_keyword_rooms(text, room):
    assert infer_room(text) == room


def test_vault_checked_before_workshop():
    """Finance keywords win over tech keywords"""
    assert infer_room("refactor trading bot script") == Room.VAULT


def test_hearth_checked_before_workshop():
    assert infer_room("build a treehouse for the kids") == Room.HEARTH


def test_vault_checked_before_hearth():
    assert infer_room("family portfolio review") == Room.VAULT


def test_substring_match():
    # "codebase" contains "code"
    assert infer_room("tidy the codebase") == Room.WORKSHOP

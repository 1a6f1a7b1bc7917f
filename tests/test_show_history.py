"""
Edit history command-line tool.
"""

import json
from datetime import datetime
from unittest.mock import patch

import pytest

from incident_scribe.core import dao
from incident_scribe.core.schema import AuditEntry
from scripts.show_history import format_entry, main


@pytest.fixture(autouse=True)
def setup_database(fresh_db):
    """Empty database for each test."""


def run(*args) -> int:
    with patch("sys.argv", ["show_history.py", *args]):
        return main()


def test_format_entry():
    entry = AuditEntry(
        id=3,
        record_id="r1",
        changes={"summary": {"old": "a", "new": "b"}},
        actor="ms. lee",
        edited_at=datetime(2024, 3, 15, 10, 30, 5, 123),
    )

    assert format_entry(entry) == "#3  2024-03-15 10:30:05  by ms. lee\n  summary: 'a' -> 'b'"


def test_text_output(capsys):
    stored = dao.create_record({"summary": "a"})
    dao.update_record(stored.id, {"summary": "b"}, "ms. lee")
    dao.update_record(stored.id, {"summary": "c"}, "mr. cole")

    assert run(stored.id) == 0

    out = capsys.readouterr().out
    assert out.index("by mr. cole") < out.index("by ms. lee")
    assert "summary: 'b' -> 'c'" in out


def test_json_output_with_limit(capsys):
    stored = dao.create_record({"summary": "a"})
    dao.update_record(stored.id, {"summary": "b"}, "ms. lee")
    dao.update_record(stored.id, {"summary": "c"}, "mr. cole")

    assert run(stored.id, "--json", "-n", "1") == 0

    entries = json.loads(capsys.readouterr().out)
    assert len(entries) == 1
    assert entries[0]["actor"] == "mr. cole"
    assert entries[0]["changes"] == {"summary": {"old": "b", "new": "c"}}


def test_no_edits(capsys):
    stored = dao.create_record({"summary": "a"})

    assert run(stored.id) == 0
    assert "No edits recorded." in capsys.readouterr().out


def test_missing_record(capsys):
    assert run("missing") == 1
    assert "Record not found: missing" in capsys.readouterr().err

"""Tests for session discovery through sessions-index.json files."""

from __future__ import annotations

from pathlib import Path

from burnrate.usage.scanner import LogScanner, scan_sessions_for_date

from tests.factories import ClaudeTree, user_event


class TestScan:
    def test_matches_created_date(self, claude_tree: ClaudeTree):
        path = claude_tree.add_session(
            "proj", "s1", [user_event("2026-02-19T10:00:00Z")],
            created="2026-02-19T10:00:00.000Z", modified="2026-02-20T01:00:00.000Z",
        )
        assert LogScanner(claude_tree.root).scan("2026-02-19") == {path}

    def test_matches_modified_date(self, claude_tree: ClaudeTree):
        path = claude_tree.add_session(
            "proj", "s1", [user_event("2026-02-18T23:00:00Z")],
            created="2026-02-18T23:00:00.000Z", modified="2026-02-19T00:30:00.000Z",
        )
        assert LogScanner(claude_tree.root).scan("2026-02-19") == {path}

    def test_other_dates_excluded(self, claude_tree: ClaudeTree):
        claude_tree.add_session(
            "proj", "s1", [user_event("2026-02-17T10:00:00Z")],
            created="2026-02-17T10:00:00Z",
        )
        assert LogScanner(claude_tree.root).scan("2026-02-19") == set()

    def test_collects_across_projects(self, claude_tree: ClaudeTree):
        a = claude_tree.add_session("a", "s1", [], created="2026-02-19T01:00:00Z")
        b = claude_tree.add_session("b", "s2", [], created="2026-02-19T02:00:00Z")
        assert scan_sessions_for_date("2026-02-19", claude_tree.root) == {a, b}

    def test_path_in_two_indices_returned_once(self, claude_tree: ClaudeTree):
        path = claude_tree.add_session("a", "s1", [], created="2026-02-19T01:00:00Z")
        claude_tree.add_index_entry("b", path, "2026-02-19T01:00:00Z", "2026-02-19T01:00:00Z")
        assert LogScanner(claude_tree.root).scan("2026-02-19") == {path}

    def test_malformed_index_skipped(self, claude_tree: ClaudeTree):
        good = claude_tree.add_session("good", "s1", [], created="2026-02-19T01:00:00Z")
        bad_dir = claude_tree.root / "projects" / "bad"
        bad_dir.mkdir(parents=True)
        (bad_dir / "sessions-index.json").write_text("{not json", encoding="utf-8")
        assert LogScanner(claude_tree.root).scan("2026-02-19") == {good}

    def test_project_without_index(self, claude_tree: ClaudeTree):
        (claude_tree.root / "projects" / "empty").mkdir(parents=True)
        assert LogScanner(claude_tree.root).scan("2026-02-19") == set()

    def test_missing_claude_dir(self, tmp_path: Path):
        assert LogScanner(tmp_path / "nope").scan("2026-02-19") == set()

    def test_entries_without_path_ignored(self, claude_tree: ClaudeTree):
        index = claude_tree.root / "projects" / "p" / "sessions-index.json"
        index.parent.mkdir(parents=True)
        index.write_text(
            '{"entries": [{"fullPath": "", "created": "2026-02-19T00:00:00Z"}, "junk"]}',
            encoding="utf-8",
        )
        assert LogScanner(claude_tree.root).scan("2026-02-19") == set()


class TestActivityDates:
    def test_union_of_created_and_modified(self, claude_tree: ClaudeTree):
        claude_tree.add_session(
            "p", "s1", [], created="2026-02-10T10:00:00Z", modified="2026-02-11T10:00:00Z",
        )
        claude_tree.add_session("p", "s2", [], created="2026-02-15T10:00:00Z")
        dates = LogScanner(claude_tree.root).activity_dates()
        assert dates == {"2026-02-10", "2026-02-11", "2026-02-15"}

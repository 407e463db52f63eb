"""Discover session logs through the per-project sessions-index.json files.

Claude Code keeps one index per project directory under ~/.claude/projects.
Each entry points at a session JSONL file and carries its created/modified
timestamps, which lets us pick the logs touched on a given day without
opening every JSONL file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from burnrate.usage.models import SessionLogRef

logger = logging.getLogger(__name__)

INDEX_FILENAME = "sessions-index.json"


def _date_prefix(value: Any) -> str:
    """Calendar date of an ISO timestamp ("2026-02-19T10:00:00Z" -> "2026-02-19")."""
    if not isinstance(value, str):
        return ""
    return value[:10]


def _read_index(index_path: Path) -> list[dict[str, Any]]:
    """Return the entries of one index file, or [] if missing/malformed."""
    try:
        with open(index_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return []
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug("Skipping index %s: %s", index_path, e)
        return []

    if not isinstance(data, dict):
        return []
    entries = data.get("entries") or []
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict)]


class LogScanner:
    """Enumerates session logs referenced by the project indices."""

    def __init__(self, claude_dir: Path) -> None:
        self.claude_dir = Path(claude_dir)

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    def _index_files(self) -> list[Path]:
        try:
            return sorted(
                d / INDEX_FILENAME for d in self.projects_dir.iterdir() if d.is_dir()
            )
        except OSError:
            return []

    def refs(self) -> list[SessionLogRef]:
        """Every index entry across all projects, in index order."""
        refs: list[SessionLogRef] = []
        for index_path in self._index_files():
            for entry in _read_index(index_path):
                full_path = entry.get("fullPath")
                if not full_path or not isinstance(full_path, str):
                    continue
                refs.append(
                    SessionLogRef(
                        path=Path(full_path),
                        created_date=_date_prefix(entry.get("created")),
                        modified_date=_date_prefix(entry.get("modified")),
                    )
                )
        return refs

    def scan(self, target_date: str) -> set[Path]:
        """Log paths created or last modified on ``target_date`` (YYYY-MM-DD).

        A session referenced by several indices is returned once.
        """
        paths = {
            ref.path
            for ref in self.refs()
            if target_date in (ref.created_date, ref.modified_date)
        }
        logger.debug("Scan %s: %d session logs", target_date, len(paths))
        return paths

    def activity_dates(self) -> set[str]:
        """All calendar dates on which some indexed session was created or modified."""
        dates: set[str] = set()
        for ref in self.refs():
            dates.update(d for d in (ref.created_date, ref.modified_date) if d)
        return dates


def scan_sessions_for_date(target_date: str, claude_dir: Path) -> set[Path]:
    """Shortcut for ``LogScanner(claude_dir).scan(target_date)``."""
    return LogScanner(claude_dir).scan(target_date)

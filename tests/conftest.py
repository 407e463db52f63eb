"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.factories import ClaudeTree


@pytest.fixture
def claude_tree(tmp_path: Path) -> ClaudeTree:
    """An empty fake ~/.claude directory."""
    return ClaudeTree(tmp_path / ".claude")

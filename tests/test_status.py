"""Tests for display status derivation and the tray title."""

from __future__ import annotations

import pytest

from burnrate.usage.models import UsageSnapshot
from burnrate.usage.status import DisplayStatus, derive_status, format_reset, format_title


def _connected(**kw) -> UsageSnapshot:
    return UsageSnapshot(remote_connected=True, **kw)


class TestDeriveStatus:
    def test_initializing_before_first_update(self):
        assert derive_status(UsageSnapshot(), 0) is DisplayStatus.INITIALIZING

    def test_connected(self):
        assert derive_status(_connected(), 2) is DisplayStatus.CONNECTED

    def test_action_required_at_threshold(self):
        assert derive_status(_connected(), 3) is DisplayStatus.ACTION_REQUIRED
        assert derive_status(UsageSnapshot(), 7) is DisplayStatus.ACTION_REQUIRED


class TestFormatReset:
    @pytest.mark.parametrize(
        "minutes, expected",
        [(0, ""), (-5, ""), (45, "45m"), (60, "1h"), (120, "2h"), (133, "2h13m")],
    )
    def test_format(self, minutes, expected):
        assert format_reset(minutes) == expected


class TestFormatTitle:
    def test_login_required(self):
        assert format_title(_connected(session_percent=50), 3) == "⚠️ Login required"

    def test_loading(self):
        assert format_title(UsageSnapshot(), 0) == "🔥 loading..."

    def test_with_reset(self):
        snap = _connected(session_percent=42.7, session_reset_minutes=133, weekly_all_percent=30.2)
        assert format_title(snap, 0) == "⚡42%(2h13m) 🔋30%"

    def test_without_reset(self):
        snap = _connected(session_percent=5, weekly_all_percent=1)
        assert format_title(snap, 0) == "⚡5% 🔋1%"

    def test_extra_usage_remaining(self):
        snap = _connected(
            session_percent=100, session_reset_minutes=30, weekly_all_percent=80,
            monthly_cost=12.4, monthly_limit=50,
        )
        assert format_title(snap, 0) == "⚡100%(30m) 💰$38left 🔋80%"

    def test_extra_usage_over(self):
        snap = _connected(session_percent=100, weekly_all_percent=80,
                          monthly_cost=60, monthly_limit=50)
        assert format_title(snap, 0) == "⚡100% 💰-$10over 🔋80%"

    def test_display_modes(self):
        snap = _connected(session_percent=20, weekly_all_percent=40)
        assert format_title(snap, 0, display_mode="session") == "⚡20%"
        assert format_title(snap, 0, display_mode="weekly") == "🔋40%"

"""Display status derived from poll health, and the compact tray title."""

from __future__ import annotations

from enum import Enum

from burnrate.usage.models import UsageSnapshot

DEFAULT_FAILURE_THRESHOLD = 3


class DisplayStatus(str, Enum):
    ACTION_REQUIRED = "action_required"  # remote stale, most likely logged out
    CONNECTED = "connected"
    INITIALIZING = "initializing"


def derive_status(
    snapshot: UsageSnapshot,
    consecutive_failures: int,
    threshold: int = DEFAULT_FAILURE_THRESHOLD,
) -> DisplayStatus:
    if consecutive_failures >= threshold:
        return DisplayStatus.ACTION_REQUIRED
    if snapshot.remote_connected:
        return DisplayStatus.CONNECTED
    return DisplayStatus.INITIALIZING


def format_reset(minutes: int) -> str:
    """45 -> '45m', 120 -> '2h', 133 -> '2h13m'; '' when not positive."""
    if minutes <= 0:
        return ""
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h" if mins == 0 else f"{hours}h{mins}m"


def _session_part(snapshot: UsageSnapshot) -> str:
    reset = format_reset(snapshot.session_reset_minutes)
    suffix = f"({reset})" if reset else ""

    # Session exhausted with extra usage enabled: show remaining budget
    if (
        snapshot.session_percent >= 100
        and snapshot.monthly_cost > 0
        and snapshot.monthly_limit > 0
    ):
        remaining = snapshot.monthly_limit - snapshot.monthly_cost
        budget = f"${remaining:.0f}left" if remaining >= 0 else f"-${-remaining:.0f}over"
        return f"⚡100%{suffix} 💰{budget}"

    return f"⚡{int(snapshot.session_percent)}%{suffix}"


def format_title(
    snapshot: UsageSnapshot,
    consecutive_failures: int,
    threshold: int = DEFAULT_FAILURE_THRESHOLD,
    display_mode: str = "all",
) -> str:
    """One-line status for the tray/menu bar."""
    status = derive_status(snapshot, consecutive_failures, threshold)
    if status is DisplayStatus.ACTION_REQUIRED:
        return "⚠️ Login required"
    if status is DisplayStatus.INITIALIZING:
        return "🔥 loading..."

    weekly = f"🔋{int(snapshot.weekly_all_percent)}%"
    if display_mode == "session":
        return _session_part(snapshot)
    if display_mode == "weekly":
        return weekly
    return f"{_session_part(snapshot)} {weekly}"

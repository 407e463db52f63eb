"""Merge local logs, the stats cache and the remote read-out into a snapshot.

Merge order (each step only writes its own fields):

1. Resolve the active date (today if it has any activity, else the most
   recent earlier day with activity in either source).
2. Today-scoped counts: stats cache if it has data for the active date,
   otherwise a scan + aggregation of that day's logs.
3. Trailing session-window tokens (active date == today only).
4. Estimated usage percent from the trailing tokens, clamped to 0..100.
5. Seven-day token series from the stats cache.
6. Remote fields: replaced only by ``RemoteOk``; anything else keeps the
   previous values.

Steps 1-5 are ``build_local``; step 6 is ``apply_remote``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from burnrate.usage.aggregator import aggregate, normalize_model
from burnrate.usage.cache import CACHE_FILENAME, StatsCache, read_stats_cache
from burnrate.usage.models import EventTotals, TodaySource, UsageSnapshot
from burnrate.usage.remote import RemoteOk, RemoteResult
from burnrate.usage.scanner import LogScanner

logger = logging.getLogger(__name__)


def usage_percent(tokens: int, cap: int) -> float:
    """Share of the estimated window cap, clamped to [0, 100]."""
    if cap <= 0:
        return 0.0
    return max(0.0, min(100.0, tokens / cap * 100))


def _normalized_buckets(tokens_by_model: dict[str, int]) -> dict[str, int]:
    buckets: dict[str, int] = {}
    for model, count in tokens_by_model.items():
        key = normalize_model(model)
        buckets[key] = buckets.get(key, 0) + count
    return buckets


class UsageSnapshotBuilder:
    """Builds ``UsageSnapshot`` values. Never raises."""

    def __init__(
        self,
        claude_dir: Path,
        *,
        estimated_window_cap: int = 15_000_000,
        session_window_hours: int = 5,
        weekly_days: int = 7,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.claude_dir = Path(claude_dir)
        self.scanner = LogScanner(self.claude_dir)
        self.estimated_window_cap = estimated_window_cap
        self.session_window = timedelta(hours=session_window_hours)
        self.weekly_days = weekly_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def cache_path(self) -> Path:
        return self.claude_dir / CACHE_FILENAME

    def _read_cache(self) -> StatsCache | None:
        try:
            return read_stats_cache(self.cache_path)
        except Exception:
            logger.exception("Stats cache read failed")
            return None

    def _aggregate(self, paths: set[Path], since: datetime | None = None) -> EventTotals:
        if not paths:
            return EventTotals()
        try:
            return aggregate(sorted(paths), since=since)
        except Exception:
            logger.exception("Log aggregation failed")
            return EventTotals()

    def _scan(self, day: str) -> set[Path]:
        try:
            return self.scanner.scan(day)
        except Exception:
            logger.exception("Session scan failed for %s", day)
            return set()

    def _latest_prior_date(self, today: str, cache: StatsCache | None) -> str | None:
        cache_dates: set[str] = cache.activity_dates() if cache is not None else set()
        try:
            log_dates = self.scanner.activity_dates()
        except Exception:
            logger.exception("Session index enumeration failed")
            log_dates = set()

        # Newest first; an indexed date only counts if its logs hold events
        for day in sorted(cache_dates | log_dates, reverse=True):
            if day >= today:
                continue
            if day in cache_dates:
                return day
            if not self._aggregate(self._scan(day)).is_empty:
                return day
        return None

    # -- steps 1-5 -------------------------------------------------------------

    def build_local(self, previous: UsageSnapshot, now: datetime | None = None) -> UsageSnapshot:
        """Recompute every local field; remote fields are carried over from ``previous``."""
        now = now or self._clock()
        today_date: date = now.astimezone(timezone.utc).date()
        today = today_date.isoformat()
        cache = self._read_cache()

        # 1. Active date
        today_paths = self._scan(today)
        today_totals = self._aggregate(today_paths)
        cache_has_today = cache is not None and cache.has_activity(today)

        if cache_has_today or not today_totals.is_empty:
            active = today
        else:
            active = self._latest_prior_date(today, cache) or today

        if active == today:
            paths, totals = today_paths, today_totals
        else:
            paths = self._scan(active)
            totals = self._aggregate(paths)

        # 2. Today-scoped counts
        if cache is not None and cache.has_activity(active):
            source = TodaySource.CACHE
            activity = cache.activity_for(active)
            tokens_by_model = cache.tokens_for(active)
            messages = activity.message_count if activity else 0
            tool_calls = activity.tool_call_count if activity else 0
            sessions = activity.session_count if activity else 0
            tokens = sum(tokens_by_model.values())
            model_tokens = _normalized_buckets(tokens_by_model)
        elif not totals.is_empty:
            source = TodaySource.LOGS
            messages = totals.message_count
            tool_calls = totals.tool_call_count
            sessions = len(paths)
            tokens = totals.total_tokens
            model_tokens = dict(totals.model_tokens)
        else:
            source = TodaySource.NONE
            messages = tool_calls = sessions = tokens = 0
            model_tokens = {}

        # 3. Trailing session window
        if active == today:
            trailing = self._aggregate(paths, since=now - self.session_window).total_tokens
        else:
            trailing = 0

        # 4. Estimated percent
        percent = usage_percent(trailing, self.estimated_window_cap)

        # 5. Weekly series
        if cache is not None:
            weekly = cache.weekly_series(today_date, self.weekly_days)
        else:
            weekly = [0] * self.weekly_days

        logger.debug(
            "Local usage: active=%s source=%s messages=%d tokens=%d trailing=%d",
            active, source.value, messages, tokens, trailing,
        )

        return previous.model_copy(
            update={
                "active_date": active,
                "today_source": source,
                "today_messages": messages,
                "today_tool_calls": tool_calls,
                "today_sessions": sessions,
                "today_tokens": tokens,
                "model_tokens": model_tokens,
                "weekly_tokens": weekly,
                "trailing_tokens": trailing,
                "usage_percent": round(percent, 1),
                "local_refreshed_at": now.isoformat(),
            }
        )

    # -- step 6 ----------------------------------------------------------------

    def apply_remote(
        self,
        snapshot: UsageSnapshot,
        remote: RemoteResult | None,
        now: datetime | None = None,
    ) -> UsageSnapshot:
        """Overlay an accepted remote read-out; otherwise return ``snapshot`` unchanged."""
        if not isinstance(remote, RemoteOk):
            return snapshot
        now = now or self._clock()
        payload = remote.payload
        return snapshot.model_copy(
            update={
                "session_percent": payload.session_percent,
                "session_reset_minutes": payload.session_reset_minutes,
                "weekly_all_percent": payload.weekly_all_percent,
                "weekly_sonnet_percent": payload.weekly_sonnet_percent,
                "monthly_cost": payload.monthly_cost,
                "monthly_limit": payload.monthly_limit,
                "remote_connected": True,
                "last_updated": now.isoformat(),
            }
        )

    def build(
        self,
        previous: UsageSnapshot | None = None,
        remote: RemoteResult | None = None,
        now: datetime | None = None,
    ) -> UsageSnapshot:
        """Full merge: local refresh followed by the remote overlay."""
        now = now or self._clock()
        snapshot = self.build_local(previous or UsageSnapshot(), now)
        return self.apply_remote(snapshot, remote, now)

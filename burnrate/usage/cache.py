"""Read Claude Code's precomputed daily stats (~/.claude/stats-cache.json).

The cache is refreshed by Claude Code itself and may lag behind the raw
logs, so it is treated as a shortcut: used when it has data for a day,
ignored otherwise.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from burnrate.usage.models import DailyActivitySummary

logger = logging.getLogger(__name__)

CACHE_FILENAME = "stats-cache.json"


def _pick_list(data: dict[str, Any], *keys: str) -> list[Any]:
    """First non-empty list among alternate spellings of a field."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


@dataclass
class StatsCache:
    """Parsed stats cache, keyed by calendar date."""

    activity: dict[str, DailyActivitySummary] = field(default_factory=dict)
    model_tokens: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatsCache":
        cache = cls()

        for day in _pick_list(data, "dailyActivity", "daily_activity"):
            if not isinstance(day, dict) or not isinstance(day.get("date"), str):
                continue
            cache.activity[day["date"]] = DailyActivitySummary(
                date=day["date"],
                message_count=_as_int(day.get("messageCount")),
                tool_call_count=_as_int(day.get("toolCallCount")),
                session_count=_as_int(day.get("sessionCount")),
            )

        for day in _pick_list(data, "dailyModelTokens", "daily_model_tokens"):
            if not isinstance(day, dict) or not isinstance(day.get("date"), str):
                continue
            by_model = day.get("tokensByModel")
            if not isinstance(by_model, dict):
                continue
            tokens = cache.model_tokens.setdefault(day["date"], {})
            for model, count in by_model.items():
                tokens[model] = tokens.get(model, 0) + _as_int(count)

        return cache

    def activity_for(self, day: str) -> DailyActivitySummary | None:
        return self.activity.get(day)

    def tokens_for(self, day: str) -> dict[str, int]:
        return dict(self.model_tokens.get(day, {}))

    def total_tokens_for(self, day: str) -> int:
        return sum(self.model_tokens.get(day, {}).values())

    def has_activity(self, day: str) -> bool:
        activity = self.activity.get(day)
        if activity is not None and activity.message_count > 0:
            return True
        return self.total_tokens_for(day) > 0

    def activity_dates(self) -> set[str]:
        dates = set(self.activity) | set(self.model_tokens)
        return {d for d in dates if self.has_activity(d)}

    def weekly_series(self, today: date, days: int = 7) -> list[int]:
        """Token totals for the last ``days`` days, oldest first, today last."""
        return [
            self.total_tokens_for((today - timedelta(days=offset)).isoformat())
            for offset in range(days - 1, -1, -1)
        ]


def read_stats_cache(path: Path) -> StatsCache | None:
    """Load the stats cache; None if missing, unreadable or malformed."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug("Ignoring stats cache %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.debug("Ignoring stats cache %s: not an object", path)
        return None
    return StatsCache.from_dict(data)

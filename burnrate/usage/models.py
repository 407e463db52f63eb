"""Data model for the usage engine.

Parsing-side records (scanner, aggregator, cache) are plain dataclasses.
Anything that is published or persisted is a pydantic model so it can be
serialized straight into API responses and the history file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ── Local records ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SessionLogRef:
    """One session log referenced by a project's sessions-index.json."""

    path: Path
    created_date: str
    modified_date: str


@dataclass
class JournalEvent:
    """A single line of a session log."""

    kind: str  # "user" | "assistant" | "other"
    timestamp: str = ""
    model: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def has_usage(self) -> bool:
        return self.input_tokens is not None or self.output_tokens is not None

    @property
    def tokens(self) -> int:
        return (self.input_tokens or 0) + (self.output_tokens or 0)


@dataclass
class EventTotals:
    """Counts produced by one aggregation pass."""

    message_count: int = 0
    tool_call_count: int = 0
    total_tokens: int = 0
    model_tokens: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.message_count == 0 and self.total_tokens == 0


@dataclass
class DailyActivitySummary:
    """Per-day activity counters, from the stats cache or from raw logs."""

    date: str
    message_count: int = 0
    tool_call_count: int = 0
    session_count: int = 0


@dataclass
class PollHealth:
    """Consecutive cycles that finished without a fresh remote update."""

    consecutive_failures: int = 0


class TodaySource(str, Enum):
    """Which source the today-scoped snapshot fields came from."""

    CACHE = "cache"
    LOGS = "logs"
    NONE = "none"


# ── Remote payload ───────────────────────────────────────────────────────────


class RemoteUsagePayload(BaseModel):
    """Quota read-out scraped from the usage page.

    The scraper emits snake_case keys; camelCase is accepted as well.
    Every numeric field may be missing and defaults to zero.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_percent: float = Field(
        0.0, validation_alias=AliasChoices("session_percent", "sessionPercent")
    )
    session_reset_minutes: int = Field(
        0, validation_alias=AliasChoices("session_reset_minutes", "sessionResetMinutes")
    )
    weekly_all_percent: float = Field(
        0.0, validation_alias=AliasChoices("weekly_all_percent", "weeklyAllPercent")
    )
    weekly_sonnet_percent: float = Field(
        0.0, validation_alias=AliasChoices("weekly_sonnet_percent", "weeklySonnetPercent")
    )
    monthly_cost: float = Field(
        0.0, validation_alias=AliasChoices("monthly_cost", "monthlyCost")
    )
    monthly_limit: float = Field(
        0.0, validation_alias=AliasChoices("monthly_limit", "monthlyLimit")
    )
    error: str | None = None


# ── Published snapshot ───────────────────────────────────────────────────────


class UsageSnapshot(BaseModel):
    """Aggregate usage state. Frozen: every reader holds its own copy."""

    model_config = ConfigDict(frozen=True)

    # Local (recomputed every cycle)
    active_date: str = ""
    today_source: TodaySource = TodaySource.NONE
    today_messages: int = 0
    today_tool_calls: int = 0
    today_sessions: int = 0
    today_tokens: int = 0
    model_tokens: dict[str, int] = Field(default_factory=dict)
    weekly_tokens: list[int] = Field(default_factory=lambda: [0] * 7)
    trailing_tokens: int = 0
    usage_percent: float = 0.0
    local_refreshed_at: str | None = None

    # Remote (only replaced by an accepted payload)
    session_percent: float = 0.0
    session_reset_minutes: int = 0
    weekly_all_percent: float = 0.0
    weekly_sonnet_percent: float = 0.0
    monthly_cost: float = 0.0
    monthly_limit: float = 0.0
    remote_connected: bool = False
    last_updated: str | None = None

    @property
    def opus_tokens(self) -> int:
        return self.model_tokens.get("Opus", 0)

    @property
    def sonnet_tokens(self) -> int:
        return self.model_tokens.get("Sonnet", 0)


class HistoryEntry(BaseModel):
    """One point of the persisted quota-percentage series."""

    timestamp: str
    session_percent: float = 0.0
    weekly_all_percent: float = 0.0
    weekly_sonnet_percent: float = 0.0


class AppConfig(BaseModel):
    """Runtime-adjustable settings (readable/writable through the API)."""

    poll_interval_secs: int = Field(60, ge=1)
    display_mode: str = Field("all", pattern="^(all|session|weekly)$")

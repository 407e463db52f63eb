"""Usage engine: local log aggregation, remote merge, polling, history."""

from burnrate.usage.aggregator import aggregate, normalize_model
from burnrate.usage.builder import UsageSnapshotBuilder, usage_percent
from burnrate.usage.cache import StatsCache, read_stats_cache
from burnrate.usage.history import HistoryStore
from burnrate.usage.models import (
    AppConfig,
    HistoryEntry,
    RemoteUsagePayload,
    TodaySource,
    UsageSnapshot,
)
from burnrate.usage.poller import UsagePoller
from burnrate.usage.remote import (
    HttpRemoteFetcher,
    NullFetcher,
    RemoteErr,
    RemoteOk,
    decode_result_url,
    parse_remote_payload,
)
from burnrate.usage.scanner import LogScanner, scan_sessions_for_date
from burnrate.usage.state import PollerPhase, UsageState, UsageUpdate
from burnrate.usage.status import DisplayStatus, derive_status, format_title

__all__ = [
    "AppConfig",
    "DisplayStatus",
    "HistoryEntry",
    "HistoryStore",
    "HttpRemoteFetcher",
    "LogScanner",
    "NullFetcher",
    "PollerPhase",
    "RemoteErr",
    "RemoteOk",
    "RemoteUsagePayload",
    "StatsCache",
    "TodaySource",
    "UsagePoller",
    "UsageSnapshot",
    "UsageSnapshotBuilder",
    "UsageState",
    "UsageUpdate",
    "aggregate",
    "decode_result_url",
    "derive_status",
    "format_title",
    "normalize_model",
    "parse_remote_payload",
    "read_stats_cache",
    "scan_sessions_for_date",
    "usage_percent",
]

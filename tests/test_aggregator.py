"""Tests for JSONL event aggregation and model-name normalization."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from burnrate.usage.aggregator import (
    aggregate,
    count_tool_calls,
    normalize_model,
    parse_event,
    parse_timestamp,
)

from tests.factories import NOW, assistant_event, user_event, write_jsonl


def _iso(dt) -> str:
    return dt.isoformat().replace("+00:00", "Z")


class TestNormalizeModel:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("claude-opus-4-6", "Opus"),
            ("claude-3-5-SONNET-20241022", "Sonnet"),
            ("claude-haiku-4-5", "Haiku"),
            ("", "Unknown"),
            (None, "Unknown"),
            ("gpt-4o", "gpt-4o"),
        ],
    )
    def test_buckets(self, raw, expected):
        assert normalize_model(raw) == expected

    def test_priority_order(self):
        # Opus is checked before Sonnet
        assert normalize_model("opus-sonnet-hybrid") == "Opus"


class TestParseEvent:
    def test_assistant_with_usage(self):
        event = parse_event(
            '{"type": "assistant", "timestamp": "2026-02-19T10:00:00Z", '
            '"message": {"model": "claude-opus-4", "usage": {"input_tokens": 5, "output_tokens": 7}}}'
        )
        assert event is not None
        assert event.kind == "assistant"
        assert event.model == "claude-opus-4"
        assert event.tokens == 12

    def test_unknown_type_is_other(self):
        event = parse_event('{"type": "summary"}')
        assert event is not None
        assert event.kind == "other"

    def test_non_object_rejected(self):
        assert parse_event("[1, 2]") is None
        assert parse_event("not json") is None


class TestParseTimestamp:
    def test_zulu(self):
        assert parse_timestamp("2026-02-19T10:00:00.000Z").tzinfo is not None

    def test_naive_is_utc(self):
        ts = parse_timestamp("2026-02-19T10:00:00")
        assert ts.utcoffset() == timedelta(0)

    def test_garbage(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None


class TestAggregate:
    def test_user_and_assistant_counted(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            user_event("2026-02-19T10:00:00Z"),
            assistant_event("2026-02-19T10:00:05Z", model="claude-opus-4",
                            input_tokens=100, output_tokens=200),
        ])
        totals = aggregate([log])
        assert totals.message_count == 2
        assert totals.total_tokens == 300
        assert totals.model_tokens == {"Opus": 300}

    def test_assistant_without_usage_counts_message_only(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            {"type": "assistant", "timestamp": "2026-02-19T10:00:00Z",
             "message": {"model": "claude-sonnet-4"}},
        ])
        totals = aggregate([log])
        assert totals.message_count == 1
        assert totals.total_tokens == 0
        assert totals.model_tokens == {}

    def test_missing_model_goes_to_unknown(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            {"type": "assistant", "message": {"usage": {"input_tokens": 3, "output_tokens": 4}}},
        ])
        assert aggregate([log]).model_tokens == {"Unknown": 7}

    def test_bad_lines_skipped_individually(self, tmp_path: Path):
        log = tmp_path / "s.jsonl"
        log.write_text(
            '{"type": "user", "timestamp": "2026-02-19T10:00:00Z"}\n'
            "{broken\n"
            "\n"
            '{"type": "user", "timestamp": "2026-02-19T10:01:00Z"}\n',
            encoding="utf-8",
        )
        assert aggregate([log]).message_count == 2

    def test_other_events_ignored(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            {"type": "summary", "summary": "x"},
            {"type": "system", "timestamp": "2026-02-19T10:00:00Z"},
        ])
        assert aggregate([log]).message_count == 0

    def test_missing_file_skipped(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [user_event("2026-02-19T10:00:00Z")])
        totals = aggregate([tmp_path / "gone.jsonl", log])
        assert totals.message_count == 1

    def test_tool_calls_counted_textually(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            assistant_event("2026-02-19T10:00:00Z", tool_use=True),
            assistant_event("2026-02-19T10:01:00Z", tool_use=True),
            assistant_event("2026-02-19T10:02:00Z"),
        ])
        assert aggregate([log]).tool_call_count == 2

    def test_bucket_sum_never_exceeds_total(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            assistant_event("2026-02-19T10:00:00Z", model="claude-opus-4"),
            assistant_event("2026-02-19T10:01:00Z", model="claude-haiku-4"),
            assistant_event("2026-02-19T10:02:00Z", model="mystery"),
        ])
        totals = aggregate([log])
        assert sum(totals.model_tokens.values()) <= totals.total_tokens
        assert set(totals.model_tokens) == {"Opus", "Haiku", "mystery"}


class TestWindowedAggregate:
    def test_cutoff_is_inclusive(self, tmp_path: Path):
        cutoff = NOW - timedelta(hours=5)
        log = write_jsonl(tmp_path / "s.jsonl", [
            assistant_event(_iso(cutoff - timedelta(seconds=1)), input_tokens=1, output_tokens=0),
            assistant_event(_iso(cutoff), input_tokens=10, output_tokens=0),
            assistant_event(_iso(NOW), input_tokens=100, output_tokens=0),
        ])
        totals = aggregate([log], since=cutoff)
        assert totals.total_tokens == 110
        assert totals.message_count == 2

    def test_unparsable_timestamps_excluded_only_when_windowed(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            assistant_event("not-a-time", input_tokens=50, output_tokens=0),
            user_event(""),
        ])
        assert aggregate([log], since=NOW - timedelta(hours=5)).total_tokens == 0
        unwindowed = aggregate([log])
        assert unwindowed.total_tokens == 50
        assert unwindowed.message_count == 2

    def test_windowed_skips_tool_scan(self, tmp_path: Path):
        log = write_jsonl(tmp_path / "s.jsonl", [
            assistant_event(_iso(NOW), tool_use=True),
        ])
        assert aggregate([log], since=NOW - timedelta(hours=5)).tool_call_count == 0


def test_count_tool_calls_tolerates_spacing():
    assert count_tool_calls('{"type":"tool_use"} {"type" : "tool_use"}') == 2

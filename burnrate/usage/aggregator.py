"""Aggregate message and token counts from session JSONL logs.

Each log line is one JSON record. User and assistant records both count as
messages; assistant records that carry ``message.usage`` contribute
input + output tokens, attributed to a normalized model bucket.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from burnrate.usage.models import EventTotals, JournalEvent

logger = logging.getLogger(__name__)

# Checked in this order; first match wins.
_MODEL_FAMILIES = ("Opus", "Sonnet", "Haiku")

# Tool invocations show up as content blocks {"type": "tool_use", ...}.
_TOOL_USE_RE = re.compile(r'"type"\s*:\s*"tool_use"')


def normalize_model(raw: str | None) -> str:
    """Map a raw model id onto its family name (Opus / Sonnet / Haiku)."""
    if not raw:
        return "Unknown"
    lowered = raw.lower()
    for family in _MODEL_FAMILIES:
        if family.lower() in lowered:
            return family
    return raw


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware datetime (naive = UTC)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def parse_event(line: str) -> JournalEvent | None:
    """Parse one log line; None if it is not a JSON object."""
    try:
        data = json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    if kind not in ("user", "assistant"):
        kind = "other"

    event = JournalEvent(kind=kind, timestamp=data.get("timestamp") or "")

    message = data.get("message")
    if isinstance(message, dict):
        model = message.get("model")
        event.model = model if isinstance(model, str) else None
        usage = message.get("usage")
        if isinstance(usage, dict):
            event.input_tokens = _as_int(usage.get("input_tokens"))
            event.output_tokens = _as_int(usage.get("output_tokens"))
    return event


def _read_text(path: Path) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Could not read %s: %s", path, e)
        return None


def count_tool_calls(content: str) -> int:
    """Best-effort count of tool invocations in raw log text."""
    return len(_TOOL_USE_RE.findall(content))


def aggregate(paths: Iterable[Path], since: datetime | None = None) -> EventTotals:
    """Count messages, tool calls and tokens across the given logs.

    Args:
        paths: Session JSONL files. Unreadable files are skipped.
        since: If given, only events whose timestamp parses and is at or
            after this instant are counted. Tool calls are not
            timestamp-aware and are only counted without a window.
    """
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)

    totals = EventTotals()

    for path in paths:
        content = _read_text(path)
        if content is None:
            continue

        for line in content.splitlines():
            line = line.strip()
            if not line:
                continue
            event = parse_event(line)
            if event is None or event.kind == "other":
                continue

            if since is not None:
                ts = parse_timestamp(event.timestamp)
                if ts is None or ts < since:
                    continue

            totals.message_count += 1

            if event.kind == "assistant" and event.has_usage:
                tokens = event.tokens
                totals.total_tokens += tokens
                bucket = normalize_model(event.model)
                totals.model_tokens[bucket] = totals.model_tokens.get(bucket, 0) + tokens

        if since is None:
            totals.tool_call_count += count_tool_calls(content)

    return totals

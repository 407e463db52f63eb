"""Rolling history of remote quota percentages, persisted as a JSON array.

The whole series is rewritten on every append and pruned to the retention
window. Persistence is best-effort: read problems yield an empty series and
write problems are logged and dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from burnrate.usage.aggregator import parse_timestamp
from burnrate.usage.models import HistoryEntry

logger = logging.getLogger(__name__)

_SERIES = TypeAdapter(list[HistoryEntry])


class HistoryStore:
    """Append-only, age-pruned series of ``HistoryEntry`` records."""

    def __init__(self, path: Path, retention_days: int = 7) -> None:
        self.path = Path(path)
        self.retention = timedelta(days=retention_days)

    def load(self) -> list[HistoryEntry]:
        """Return the persisted series as-is ([] if missing or corrupt)."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.debug("Could not read history %s: %s", self.path, e)
            return []
        try:
            return _SERIES.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding corrupt history %s (%d errors)", self.path, e.error_count())
            return []

    def append(
        self,
        session_percent: float,
        weekly_all_percent: float,
        weekly_sonnet_percent: float,
        now: datetime | None = None,
    ) -> list[HistoryEntry]:
        """Append a point stamped ``now``, prune, persist. Returns the new series."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.retention

        entries = self.load()
        entries.append(
            HistoryEntry(
                timestamp=now.isoformat(),
                session_percent=session_percent,
                weekly_all_percent=weekly_all_percent,
                weekly_sonnet_percent=weekly_sonnet_percent,
            )
        )

        kept = []
        for entry in entries:
            ts = parse_timestamp(entry.timestamp)
            if ts is not None and ts >= cutoff:
                kept.append(entry)

        self._write(kept)
        return kept

    def _write(self, entries: list[HistoryEntry]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(_SERIES.dump_json(entries))
        except OSError as e:
            logger.warning("Could not write history %s: %s", self.path, e)

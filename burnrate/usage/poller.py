"""Background poller that refreshes the usage snapshot and tracks remote health.

Each cycle:
- recomputes local usage (logs + stats cache) in a worker thread
- asks the remote fetcher for a fresh quota read-out
- counts the cycle as failed when ``last_updated`` did not move
- records history on every accepted remote update
- publishes snapshot + display status to subscribers, success or not

Cycles never overlap; the next one starts ``poll_interval_secs`` after the
previous one finished.
"""

from __future__ import annotations

import asyncio
import logging

from burnrate.usage.builder import UsageSnapshotBuilder
from burnrate.usage.history import HistoryStore
from burnrate.usage.remote import NullFetcher, RemoteErr, RemoteFetcher, RemoteResult
from burnrate.usage.state import PollerPhase, UsageState, UsageUpdate
from burnrate.usage.status import DEFAULT_FAILURE_THRESHOLD, derive_status, format_title

logger = logging.getLogger(__name__)


class UsagePoller:
    """Drives the refresh loop and owns all writes to ``UsageState``."""

    def __init__(
        self,
        builder: UsageSnapshotBuilder,
        state: UsageState,
        fetcher: RemoteFetcher | None = None,
        history: HistoryStore | None = None,
        *,
        initial_delay: float = 5.0,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        self.builder = builder
        self.state = state
        self.fetcher = fetcher or NullFetcher()
        self.history = history
        self.initial_delay = initial_delay
        self.failure_threshold = failure_threshold
        self._cycle_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(), name="usage-poller")
        logger.info(
            "Usage poller started (interval=%ss, initial_delay=%ss)",
            self.state.config.poll_interval_secs, self.initial_delay,
        )

    async def stop(self) -> None:
        """Stop the background poller."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Usage poller stopped")

    async def _poll_loop(self) -> None:
        if self.initial_delay > 0:
            await asyncio.sleep(self.initial_delay)
        while self._running:
            await self.poll_once()
            # Re-read every iteration so config changes apply to the next sleep
            await asyncio.sleep(self.state.config.poll_interval_secs)

    async def poll_once(self) -> UsageUpdate:
        """Run one cycle, unless one is already in flight.

        When a cycle is running, no second cycle is started; the most recent
        published update is returned instead.
        """
        if self._cycle_lock.locked():
            logger.debug("Poll requested while a cycle is in flight, skipped")
            return self.state.last_update or self._make_update()

        async with self._cycle_lock:
            self.state.set_phase(PollerPhase.POLLING)
            try:
                return await self._run_cycle()
            except Exception:
                logger.exception("Usage poll cycle failed")
                self.state.record_cycle(updated=False)
                update = self._make_update()
                self.state.publish(update)
                return update
            finally:
                self.state.set_phase(PollerPhase.IDLE)

    async def _run_cycle(self) -> UsageUpdate:
        loop = asyncio.get_running_loop()
        before = self.state.snapshot().last_updated

        # Local refresh; file I/O stays outside the state lock
        try:
            local = await loop.run_in_executor(
                None, self.builder.build_local, self.state.snapshot(),
            )
            self.state.replace_snapshot(local)
        except Exception:
            logger.exception("Local usage refresh failed")

        remote = await self._fetch_remote(loop)
        snapshot = self.state.update_snapshot(
            lambda current: self.builder.apply_remote(current, remote)
        )

        updated = snapshot.last_updated != before
        failures = self.state.record_cycle(updated)

        if updated:
            logger.info(
                "Remote usage updated: session=%.0f%% weekly=%.0f%% reset=%dmin",
                snapshot.session_percent,
                snapshot.weekly_all_percent,
                snapshot.session_reset_minutes,
            )
            if self.history is not None:
                await loop.run_in_executor(
                    None,
                    self.history.append,
                    snapshot.session_percent,
                    snapshot.weekly_all_percent,
                    snapshot.weekly_sonnet_percent,
                )
        elif failures == self.failure_threshold:
            logger.warning(
                "No remote update for %d consecutive polls, login likely required",
                failures,
            )
        else:
            logger.debug("Remote usage not updated, consecutive_failures=%d", failures)

        update = self._make_update()
        self.state.publish(update)
        return update

    async def _fetch_remote(self, loop: asyncio.AbstractEventLoop) -> RemoteResult | None:
        try:
            result = await loop.run_in_executor(None, self.fetcher.fetch)
        except Exception as e:
            logger.exception("Remote fetcher raised")
            return RemoteErr(str(e) or type(e).__name__)
        if isinstance(result, RemoteErr):
            logger.info("Remote usage rejected: %s", result.reason)
        return result

    def _make_update(self) -> UsageUpdate:
        snapshot = self.state.snapshot()
        failures = self.state.consecutive_failures
        config = self.state.config
        return UsageUpdate(
            snapshot=snapshot,
            status=derive_status(snapshot, failures, self.failure_threshold),
            title=format_title(
                snapshot, failures, self.failure_threshold, display_mode=config.display_mode,
            ),
            consecutive_failures=failures,
        )

"""FastAPI server exposing the usage engine to the tray/dashboard UI."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from burnrate import __version__
from burnrate.api.routes import broadcast_update, usage_router
from burnrate.config import Settings, settings
from burnrate.usage.builder import UsageSnapshotBuilder
from burnrate.usage.history import HistoryStore
from burnrate.usage.models import AppConfig
from burnrate.usage.poller import UsagePoller
from burnrate.usage.remote import HttpRemoteFetcher, NullFetcher, RemoteFetcher
from burnrate.usage.state import UsageState

logger = logging.getLogger(__name__)


def build_fetcher(cfg: Settings) -> RemoteFetcher:
    if cfg.remote_url:
        return HttpRemoteFetcher(cfg.remote_url, timeout=cfg.remote_timeout_secs)
    return NullFetcher()


def init_state(app: FastAPI, cfg: Settings) -> None:
    """Attach state container, history store and builder to ``app.state``."""
    app.state.usage_state = UsageState(
        AppConfig(poll_interval_secs=cfg.poll_interval_secs, display_mode=cfg.display_mode)
    )
    app.state.history_store = HistoryStore(cfg.history_path, cfg.history_retention_days)
    app.state.usage_builder = UsageSnapshotBuilder(
        cfg.claude_dir,
        estimated_window_cap=cfg.estimated_window_cap,
        session_window_hours=cfg.session_window_hours,
        weekly_days=cfg.weekly_days,
    )
    app.state.failure_threshold = cfg.failure_threshold


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the usage poller on startup, stop it on shutdown."""
    init_state(app, settings)
    state: UsageState = app.state.usage_state
    unsubscribe = state.subscribe(broadcast_update)

    poller = UsagePoller(
        app.state.usage_builder,
        state,
        fetcher=build_fetcher(settings),
        history=app.state.history_store,
        initial_delay=settings.initial_delay_secs,
        failure_threshold=settings.failure_threshold,
    )
    app.state.usage_poller = poller

    try:
        await poller.start()
    except Exception:
        logger.exception("Usage poller failed to start")

    if not settings.remote_url:
        logger.info("No remote_url configured, reporting local usage only")

    yield

    # Shutdown
    await poller.stop()
    unsubscribe()


def create_app() -> FastAPI:
    app = FastAPI(
        title="BurnRate - Claude usage monitor",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(usage_router, prefix="/api")
    return app


app = create_app()

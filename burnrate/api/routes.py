"""API routes for the usage snapshot, history and runtime config.

Endpoints:
  GET  /api/usage           current snapshot
  GET  /api/status          display status + poll health
  GET  /api/history         persisted quota-percentage series
  GET  /api/config          runtime config
  PUT  /api/config          replace runtime config
  POST /api/refresh         run a poll cycle now
  GET  /api/usage/stream    SSE stream of usage-updated events
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from burnrate.usage.models import AppConfig
from burnrate.usage.state import USAGE_UPDATED_EVENT, UsageUpdate
from burnrate.usage.status import derive_status, format_title

logger = logging.getLogger(__name__)

usage_router = APIRouter()

# ── SSE subscriber list (in-memory) ──────────────────────────────────────────

_sse_queues: list[asyncio.Queue[dict[str, Any]]] = []


def broadcast_update(update: UsageUpdate) -> None:
    """Push a usage update to all SSE subscribers."""
    data = update.to_dict()
    for q in _sse_queues:
        try:
            q.put_nowait(data)
        except asyncio.QueueFull:
            pass  # slow consumer, drop


# ── Snapshot / status ────────────────────────────────────────────────────────


@usage_router.get("/usage")
def get_usage(request: Request) -> dict[str, Any]:
    state = request.app.state.usage_state
    return state.snapshot().model_dump(mode="json")


@usage_router.get("/status")
def get_status(request: Request) -> dict[str, Any]:
    state = request.app.state.usage_state
    threshold = request.app.state.failure_threshold
    snapshot = state.snapshot()
    failures = state.consecutive_failures
    return {
        "status": derive_status(snapshot, failures, threshold).value,
        "title": format_title(
            snapshot, failures, threshold, display_mode=state.config.display_mode,
        ),
        "consecutive_failures": failures,
        "phase": state.phase.value,
        "remote_connected": snapshot.remote_connected,
        "last_updated": snapshot.last_updated,
    }


@usage_router.get("/history")
def get_history(request: Request) -> dict[str, Any]:
    history = request.app.state.history_store
    return {"history": [e.model_dump() for e in history.load()]}


# ── Config ───────────────────────────────────────────────────────────────────


@usage_router.get("/config")
def get_config(request: Request) -> dict[str, Any]:
    return request.app.state.usage_state.config.model_dump()


@usage_router.put("/config")
def save_config(config: AppConfig, request: Request) -> dict[str, Any]:
    request.app.state.usage_state.set_config(config)
    logger.info(
        "Config updated: interval=%ss display_mode=%s",
        config.poll_interval_secs, config.display_mode,
    )
    return config.model_dump()


# ── Manual refresh ───────────────────────────────────────────────────────────


@usage_router.post("/refresh")
async def refresh(request: Request) -> dict[str, Any]:
    """Run a poll cycle immediately (no-op if one is already running)."""
    poller = getattr(request.app.state, "usage_poller", None)
    if poller is None:
        raise HTTPException(status_code=503, detail="Usage poller is not running")
    update = await poller.poll_once()
    return update.to_dict()


# ── SSE stream ───────────────────────────────────────────────────────────────


@usage_router.get("/usage/stream")
async def usage_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of usage-updated notifications."""
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=50)
    _sse_queues.append(queue)

    async def event_generator():
        try:
            snapshot = request.app.state.usage_state.snapshot()
            yield f"event: init\ndata: {snapshot.model_dump_json()}\n\n"

            while True:
                if await request.is_disconnected():
                    break
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30)
                    yield f"event: {USAGE_UPDATED_EVENT}\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            _sse_queues.remove(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

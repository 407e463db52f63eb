"""Entry point for BurnRate."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from burnrate.config import settings
from burnrate.usage.builder import UsageSnapshotBuilder
from burnrate.usage.history import HistoryStore

console = Console()

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging() -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            logging.FileHandler(Path(settings.log_file).expanduser(), mode="a", encoding="utf-8")
        )
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def run_server() -> None:
    """Start the FastAPI server (poller runs in its lifespan)."""
    console.print(Panel("Starting BurnRate API Server", style="bold green"))
    uvicorn.run(
        "burnrate.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def show_snapshot() -> None:
    """Build one local snapshot and print it."""
    builder = UsageSnapshotBuilder(
        settings.claude_dir,
        estimated_window_cap=settings.estimated_window_cap,
        session_window_hours=settings.session_window_hours,
        weekly_days=settings.weekly_days,
    )
    snap = builder.build()

    table = Table(title=f"Usage for {snap.active_date} ({snap.today_source.value})")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Messages", f"{snap.today_messages:,}")
    table.add_row("Tool calls", f"{snap.today_tool_calls:,}")
    table.add_row("Sessions", f"{snap.today_sessions:,}")
    table.add_row("Tokens", f"{snap.today_tokens:,}")
    for model, tokens in sorted(snap.model_tokens.items(), key=lambda kv: kv[1], reverse=True):
        table.add_row(f"  {model}", f"{tokens:,}")
    table.add_row(
        f"Last {settings.session_window_hours}h tokens",
        f"{snap.trailing_tokens:,} (~{snap.usage_percent:.1f}%)",
    )
    console.print(table)
    console.print(f"[dim]7-day tokens (oldest first): {snap.weekly_tokens}[/dim]")


def show_history() -> None:
    """Print the stored quota-percentage series."""
    entries = HistoryStore(settings.history_path, settings.history_retention_days).load()
    if not entries:
        console.print("[dim]No history recorded yet.[/dim]")
        return
    table = Table(title=f"History ({len(entries)} points)")
    table.add_column("Timestamp")
    table.add_column("Session %", justify="right")
    table.add_column("Weekly %", justify="right")
    table.add_column("Sonnet %", justify="right")
    for e in entries:
        table.add_row(
            e.timestamp,
            f"{e.session_percent:.0f}",
            f"{e.weekly_all_percent:.0f}",
            f"{e.weekly_sonnet_percent:.0f}",
        )
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="BurnRate: Claude usage monitor")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server and background poller")
    sub.add_parser("snapshot", help="Print today's local usage")
    sub.add_parser("history", help="Print the stored quota history")

    args = parser.parse_args()
    setup_logging()

    if args.command == "serve":
        run_server()
    elif args.command == "snapshot":
        show_snapshot()
    elif args.command == "history":
        show_history()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "BURNRATE_",
        "extra": "ignore",
    }

    # Local Claude Code data (~/.claude)
    claude_dir: Path = Path.home() / ".claude"

    # History series for trend charts
    history_path: Path = Path.home() / ".burnrate" / "history.json"
    history_retention_days: int = 7

    # Polling
    poll_interval_secs: int = 60
    initial_delay_secs: float = 5.0
    failure_threshold: int = 3  # consecutive stale cycles before "login required"

    # Rolling windows
    # Estimated cap, Anthropic doesn't publish exact numbers
    session_window_hours: int = 5
    weekly_days: int = 7
    estimated_window_cap: int = 15_000_000

    # Remote usage read-out (scraper bridge). Empty = local data only.
    remote_url: str = ""
    remote_timeout_secs: float = 30.0

    # Tray title layout: "all" | "session" | "weekly"
    display_mode: str = "all"

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # e.g. ~/burnrate-debug.log; empty = console only


settings = Settings()

"""Runtime settings for the tracking web application."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    db_path: Path
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"


def default_db_path() -> Path:
    # relative to the directory the server is started from
    return Path("db") / "production_tracker.sqlite3"

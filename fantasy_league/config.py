"""
Configuration from environment variables and logging setup.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_STARTING_BUDGET = 300_000
DEFAULT_FRIENDLY_COOLDOWN_HOURS = 24


def _default_db_path() -> Path:
    return Path(__file__).resolve().parent.parent / "data" / "league.db"


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str
    starting_budget: int
    friendly_cooldown_hours: int


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def get_settings() -> Settings:
    """Read settings from the environment on every call (tests may monkeypatch env)."""
    db_path = os.environ.get("FANTASY_LEAGUE_DB_PATH", "").strip()
    return Settings(
        db_path=Path(db_path) if db_path else _default_db_path(),
        log_level=os.environ.get("FANTASY_LEAGUE_LOG_LEVEL", "INFO").upper(),
        starting_budget=_int_env("FANTASY_LEAGUE_STARTING_BUDGET", DEFAULT_STARTING_BUDGET),
        friendly_cooldown_hours=_int_env(
            "FANTASY_LEAGUE_FRIENDLY_COOLDOWN_HOURS", DEFAULT_FRIENDLY_COOLDOWN_HOURS
        ),
    )


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once for scripts and long-running workers."""
    log_level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Logging configured at %s level", log_level)

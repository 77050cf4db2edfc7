"""Runtime settings read from the environment.

Every setting has a default, and malformed values fall back to it, so a
missing or mistyped variable never stops the planner from starting.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from reactionplanner.constants import DEFAULT_DEBOUNCE_MS, STORAGE_KEY

PUBCHEM_URL = "https://pubchem.ncbi.nlm.nih.gov/rest"


def _env(key: str, default: str = "") -> str:
    v = os.getenv(key)
    return default if v is None else str(v).strip()


def _env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    try:
        return int(str(v).strip())
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    try:
        return float(str(v).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database: Path
    storage_key: str = STORAGE_KEY
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    pubchem_url: str = PUBCHEM_URL
    lookup_timeout: float = 10.0  # s
    log_level: str = "WARNING"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def load_settings() -> Settings:
    debounce_ms = _env_int("REACTIONPLANNER_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS)
    timeout = _env_float("REACTIONPLANNER_LOOKUP_TIMEOUT", 10.0)
    log_level = _env("REACTIONPLANNER_LOG_LEVEL", "WARNING").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log_level = "WARNING"
    return Settings(
        database=Path(
            _env("REACTIONPLANNER_DB", "~/.reactionplanner/plan.sqlite3")
        ).expanduser(),
        storage_key=_env("REACTIONPLANNER_STORAGE_KEY", STORAGE_KEY) or STORAGE_KEY,
        debounce_ms=debounce_ms if debounce_ms >= 0 else DEFAULT_DEBOUNCE_MS,
        pubchem_url=_env("REACTIONPLANNER_PUBCHEM_URL", PUBCHEM_URL).rstrip("/") or PUBCHEM_URL,
        lookup_timeout=timeout if timeout > 0 else 10.0,
        log_level=log_level,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

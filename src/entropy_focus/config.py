# src/entropy_focus/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Env values only seed defaults; user preferences (focus/break length, ...)
  are persisted by the durable store and win once saved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "ENTROPY"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_local_dotenv() -> None:
    """Load .env from the working directory; real env vars win."""
    load_dotenv(override=False)


_load_local_dotenv()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Session defaults (used until the user saves preferences) ----
    focus_minutes: int
    break_minutes: int

    # ---- Session clock ----
    clock_interval_seconds: float
    auto_advance: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "entropy") or "entropy"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        focus_minutes = max(1, _env_int(_k("FOCUS_MINUTES"), 25))
        break_minutes = max(1, _env_int(_k("BREAK_MINUTES"), 5))

        clock_interval_seconds = max(0.05, _env_float(_k("CLOCK_INTERVAL_SECONDS"), 1.0))
        auto_advance = _env_bool(_k("AUTO_ADVANCE"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/entropy"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "entropy.db")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            focus_minutes=focus_minutes,
            break_minutes=break_minutes,
            clock_interval_seconds=clock_interval_seconds,
            auto_advance=auto_advance,
            data_dir=data_dir,
            db_path=db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

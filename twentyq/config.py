from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Finished sessions stay in the table this long before the sweeper drops them.
    finished_ttl_sec: int = 300
    # 0 disables the sweeper.
    sweep_interval_sec: int = 30


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from e
    if value < 0:
        raise ValueError(f"{name} must be >= 0 (got {value})")
    return value


def load_settings(*, dotenv_path: Path | None = None) -> Settings:
    """Read settings from the environment, after loading an optional `.env`.

    Real environment variables win over `.env` entries.
    """

    load_dotenv(dotenv_path=dotenv_path or PROJECT_ROOT / ".env", override=False)

    return Settings(
        host=os.environ.get("TWENTYQ_HOST", "0.0.0.0"),
        port=_int_env("TWENTYQ_PORT", 8080),
        log_level=os.environ.get("TWENTYQ_LOG_LEVEL", "INFO").upper(),
        finished_ttl_sec=_int_env("TWENTYQ_FINISHED_TTL_SEC", 300),
        sweep_interval_sec=_int_env("TWENTYQ_SWEEP_INTERVAL_SEC", 30),
    )

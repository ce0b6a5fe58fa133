from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load project-level .env regardless of current working directory.
_DOTENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_DOTENV_PATH)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _int(value: str | None, default: int, *, minimum: int = 0) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return max(minimum, int(value))
    except ValueError:
        return default


def _float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _log_level(value: str | None) -> str:
    level = (value or "").strip().upper()
    return level if level in _LOG_LEVELS else "INFO"


def _csv(value: str | None, default: str) -> Tuple[str, ...]:
    raw = default if value is None else value
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    backend_url: str
    request_timeout_sec: float
    accepted_upload_types: Tuple[str, ...]

    chart_height: int
    bar_rotate_threshold: int

    cors_allow_origins: Tuple[str, ...]
    log_level: str

    mongodb_uri: str
    mongodb_db: str


def load_settings() -> Settings:
    return Settings(
        backend_url=os.getenv("EDA_BACKEND_URL", "http://localhost:8000").rstrip("/"),
        request_timeout_sec=_float(os.getenv("EDA_REQUEST_TIMEOUT_SEC"), 30.0),
        accepted_upload_types=_csv(os.getenv("EDA_ACCEPTED_UPLOAD_TYPES"), "text/csv"),
        chart_height=_int(os.getenv("EDA_CHART_HEIGHT"), 500, minimum=100),
        bar_rotate_threshold=_int(os.getenv("EDA_BAR_ROTATE_THRESHOLD"), 5),
        cors_allow_origins=_csv(
            os.getenv("CORS_ALLOW_ORIGINS"),
            "http://localhost:3000,http://127.0.0.1:3000",
        ),
        log_level=_log_level(os.getenv("EDA_LOG_LEVEL")),
        mongodb_uri=os.getenv("MONGODB_URI", "").strip(),
        mongodb_db=os.getenv("MONGODB_DB", "eda_dashboard").strip() or "eda_dashboard",
    )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = load_settings()
    return _SETTINGS


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _SETTINGS
    _SETTINGS = None

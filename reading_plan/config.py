"""Configuration helpers for local app wiring."""

from __future__ import annotations

from pathlib import Path
import os

from dotenv import load_dotenv


load_dotenv()


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _int_setting(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def data_dir() -> Path:
    return _project_root() / "data"


def curriculum_path() -> Path:
    override = os.getenv("READING_PLAN_CURRICULUM_PATH")
    if override:
        return Path(override)
    return data_dir() / "curriculum.json"


def db_path() -> Path:
    return Path(os.getenv("READING_PLAN_DB_PATH", str(_project_root() / "reading_plan_state.db")))


def store_timeout() -> float:
    try:
        return float(os.getenv("READING_PLAN_STORE_TIMEOUT_SECONDS", "5"))
    except ValueError:
        return 5.0


def chapters_per_day() -> int:
    value = _int_setting("READING_PLAN_CHAPTERS_PER_DAY", 4)
    return value if value > 0 else 4


def insert_batch_size() -> int:
    value = _int_setting("READING_PLAN_INSERT_BATCH_SIZE", 100)
    return value if value > 0 else 100


def update_batch_size() -> int:
    value = _int_setting("READING_PLAN_UPDATE_BATCH_SIZE", 50)
    return value if value > 0 else 50


def log_level() -> str:
    return os.getenv("READING_PLAN_LOG_LEVEL", "INFO").upper()


def default_user_id() -> str:
    return os.getenv("READING_PLAN_USER_ID", "default").strip() or "default"

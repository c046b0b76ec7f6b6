"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_positive_int(name: str, default: int) -> int:
    """Read a strictly positive integer from the environment."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}.") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}.")
    return parsed


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "DueWise"
    DB_FILENAME = "duewise.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self.DATA_DIR = self._resolve_data_dir(data_dir)
        self.DEV_MODE = _env_bool("DUEWISE_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("DUEWISE_DATABASE_URL", self._build_sqlite_url())

        self.LOAN_REMINDER_WINDOW_DAYS = _env_positive_int("DUEWISE_LOAN_WINDOW_DAYS", 8)
        self.MONTHLY_REMINDER_WINDOW_DAYS = _env_positive_int("DUEWISE_MONTHLY_WINDOW_DAYS", 8)
        self.WEEKLY_REMINDER_WINDOW_DAYS = _env_positive_int("DUEWISE_WEEKLY_WINDOW_DAYS", 2)
        self.PAID_RETENTION_HOURS = _env_positive_int("DUEWISE_PAID_RETENTION_HOURS", 48)
        self.CLEANUP_INTERVAL_MINUTES = _env_positive_int("DUEWISE_CLEANUP_INTERVAL_MINUTES", 30)
        self.CURRENCY_SYMBOL = os.getenv("DUEWISE_CURRENCY_SYMBOL", "₹")

    @property
    def paid_retention(self) -> timedelta:
        """How long a paid overlay survives before cleanup removes it."""

        return timedelta(hours=self.PAID_RETENTION_HOURS)

    def _resolve_data_dir(self, data_dir: str | Path | None = None) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = data_dir if data_dir is not None else os.getenv("DUEWISE_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to user-local storage.
            fallback_path = Path.home() / ".local" / "share" / self.APP_NAME.lower()
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside DATA_DIR."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            # The cleanup timer touches the store from its own thread.
            connect_args["check_same_thread"] = False
        return {"connect_args": connect_args}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for the test-suite; callers point DATA_DIR at a temp dir."""

    DEBUG = False
    TESTING = True

    def __init__(self, data_dir: str | Path | None = None) -> None:
        super().__init__(data_dir)
        self.DEV_MODE = True

"""
config.py
─────────
Runtime settings (read from the environment / an optional .env file) and
logging setup.
"""

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Settings:
    data_dir: Path
    sweep_interval_seconds: float
    notifier_tick_seconds: float
    schedule_horizon_days: int
    desktop_notifications: bool
    log_level: str
    log_dir: Path


def load_settings(env_path: Optional[Path] = None) -> Settings:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    horizon = _get_env_int("CHRONOS_SCHEDULE_HORIZON_DAYS", 30)
    if horizon < 1:
        raise ValueError("CHRONOS_SCHEDULE_HORIZON_DAYS must be at least 1")

    return Settings(
        data_dir=Path(os.getenv("CHRONOS_DATA_DIR", "data")),
        sweep_interval_seconds=_get_env_float("CHRONOS_SWEEP_INTERVAL_SECONDS", 60.0),
        notifier_tick_seconds=_get_env_float("CHRONOS_NOTIFIER_TICK_SECONDS", 1.0),
        schedule_horizon_days=horizon,
        desktop_notifications=_get_env_bool("CHRONOS_DESKTOP_NOTIFICATIONS", True),
        log_level=os.getenv("CHRONOS_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("CHRONOS_LOG_DIR", "logs")),
    )


def setup_logging(log_level: str = "INFO", log_dir: Path = Path("logs")) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)

    log_path = log_dir / "chronos.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )

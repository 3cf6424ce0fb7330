from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_chat_id: int
    profile_roster_path: Path
    reminder_store_path: Path
    batch_size: int = 100
    horizon: timedelta = timedelta(hours=1)
    scan_interval: timedelta = timedelta(hours=1)
    missed_lookback: timedelta = timedelta(hours=24)
    missed_settle_delay: timedelta = timedelta(seconds=30)
    log_level: str = "INFO"


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def load_settings() -> Settings:
    root = Path.cwd()

    token = _required_env("TELEGRAM_BOT_TOKEN")
    chat_id = int(_required_env("TELEGRAM_CHAT_ID"))

    profile_roster_path = Path(
        os.getenv("PROFILE_ROSTER_PATH", root / "config" / "profiles.toml")
    )
    reminder_store_path = Path(
        os.getenv("REMINDER_STORE_PATH", root / "data" / "reminder_store.json")
    )

    return Settings(
        telegram_bot_token=token,
        telegram_chat_id=chat_id,
        profile_roster_path=profile_roster_path,
        reminder_store_path=reminder_store_path,
        batch_size=_positive_int_env("REMINDER_BATCH_SIZE", 100),
        horizon=timedelta(minutes=_positive_int_env("REMINDER_HORIZON_MINUTES", 60)),
        scan_interval=timedelta(minutes=_positive_int_env("REMINDER_SCAN_INTERVAL_MINUTES", 60)),
        missed_lookback=timedelta(hours=_positive_int_env("MISSED_LOOKBACK_HOURS", 24)),
        missed_settle_delay=timedelta(seconds=_positive_int_env("MISSED_SETTLE_DELAY_SECONDS", 30)),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )

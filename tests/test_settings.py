from datetime import timedelta
from pathlib import Path

import pytest

from birthday_reminders.settings import load_settings


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", " token ")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "222")
    for name in (
        "PROFILE_ROSTER_PATH",
        "REMINDER_STORE_PATH",
        "REMINDER_BATCH_SIZE",
        "REMINDER_HORIZON_MINUTES",
        "REMINDER_SCAN_INTERVAL_MINUTES",
        "MISSED_LOOKBACK_HOURS",
        "MISSED_SETTLE_DELAY_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.telegram_bot_token == "token"
    assert settings.telegram_chat_id == 222
    assert settings.profile_roster_path == tmp_path / "config" / "profiles.toml"
    assert settings.reminder_store_path == tmp_path / "data" / "reminder_store.json"
    assert settings.batch_size == 100
    assert settings.horizon == timedelta(hours=1)
    assert settings.missed_lookback == timedelta(hours=24)
    assert settings.missed_settle_delay == timedelta(seconds=30)
    assert settings.log_level == "INFO"


def test_load_settings_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "token")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "222")
    monkeypatch.setenv("REMINDER_BATCH_SIZE", "25")
    monkeypatch.setenv("MISSED_LOOKBACK_HOURS", "48")

    settings = load_settings()

    assert settings.batch_size == 25
    assert settings.missed_lookback == timedelta(hours=48)


def test_missing_token_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "222")

    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        load_settings()


def test_non_positive_batch_size_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "token")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "222")
    monkeypatch.setenv("REMINDER_BATCH_SIZE", "0")

    with pytest.raises(ValueError, match="REMINDER_BATCH_SIZE"):
        load_settings()

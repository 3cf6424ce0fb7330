from pathlib import Path

import pytest

from birthday_reminders.store import JsonReminderStore


@pytest.fixture
def store(tmp_path: Path) -> JsonReminderStore:
    return JsonReminderStore(tmp_path / "reminder_store.json")

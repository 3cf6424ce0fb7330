from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from birthday_reminders.date_logic import occurrence_year
from birthday_reminders.errors import StoreError
from birthday_reminders.models import ProfileRecord, ReminderState, UserBirthdayProfile

STORE_VERSION = 1


class ReminderStateStore(Protocol):
    """Persistence contract used by the scanners and the profile service.

    Every mutation is a single conditional update and is safe to retry;
    ``expected_next_reminder`` makes a write a no-op when another writer
    rescheduled the record after it was read.
    Finders page by profile id: rows are ordered by id and start strictly
    after ``after``.
    """

    def get(self, profile_id: str) -> ProfileRecord | None: ...

    def find_scheduled(
        self,
        window_start: datetime | None,
        window_end: datetime,
        *,
        exclude_processed: bool = False,
        after: str | None = None,
        limit: int = 100,
    ) -> list[ProfileRecord]: ...

    def find_unscheduled(self, *, after: str | None = None, limit: int = 100) -> list[ProfileRecord]: ...

    def find_profiles(self, *, after: str | None = None, limit: int = 100) -> list[ProfileRecord]: ...

    def upsert_profile(self, profile: UserBirthdayProfile) -> ProfileRecord: ...

    def soft_delete_profile(self, profile_id: str) -> bool: ...

    def mark_processed(
        self,
        profile_id: str,
        year: int,
        next_reminder: datetime | None,
        *,
        expected_next_reminder: datetime | None,
    ) -> bool: ...

    def set_next_reminder(
        self,
        profile_id: str,
        next_reminder: datetime | None,
        *,
        only_if_unset: bool = False,
        expected_next_reminder: datetime | None = None,
    ) -> bool: ...

    def deactivate(self, profile_id: str) -> bool: ...


def _dump_instant(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _load_instant(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise StoreError(f"Malformed reminder instant: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _record_from_row(profile_id: str, row: dict[str, Any]) -> ProfileRecord:
    reminder = row.get("reminder") or {}
    last_year = reminder.get("last_processed_year")
    profile = UserBirthdayProfile(
        profile_id=profile_id,
        display_name=str(row.get("name", "")),
        birthday_month=row.get("month"),
        birthday_day=row.get("day"),
        timezone=row.get("timezone"),
        birth_year=row.get("year"),
    )
    state = ReminderState(
        active=bool(reminder.get("active", True)),
        next_reminder=_load_instant(reminder.get("next_reminder")),
        last_processed_year=int(last_year) if last_year is not None else None,
    )
    return ProfileRecord(profile=profile, reminder=state, deleted=bool(row.get("deleted", False)))


def _new_reminder_row() -> dict[str, Any]:
    return {"active": True, "next_reminder": None, "last_processed_year": None}


class JsonReminderStore:
    """File-backed store keeping profiles and reminder state in one JSON document.

    Each public call reads, conditionally updates and atomically rewrites the
    document while holding the store lock, so callers never need their own
    read-modify-write.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"version": STORE_VERSION, "profiles": {}}

        try:
            with self._path.open("r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Cannot read reminder store {self._path}: {exc}") from exc

        profiles = data.get("profiles") if isinstance(data, dict) else None
        if not isinstance(profiles, dict):
            raise StoreError(f"Malformed reminder store {self._path}: missing profiles mapping")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                delete=False,
            ) as temp_file:
                json.dump(data, temp_file, indent=2, sort_keys=True)
                temp_file.write("\n")
                temp_name = temp_file.name

            os.replace(temp_name, self._path)
        except OSError as exc:
            raise StoreError(f"Cannot write reminder store {self._path}: {exc}") from exc

    def _select(
        self,
        predicate: Callable[[dict[str, Any]], bool],
        after: str | None,
        limit: int,
    ) -> list[ProfileRecord]:
        if limit <= 0:
            raise ValueError("limit must be positive")

        with self._lock:
            profiles = self._load()["profiles"]

        selected: list[ProfileRecord] = []
        for profile_id in sorted(profiles):
            if after is not None and profile_id <= after:
                continue
            row = profiles[profile_id]
            if not predicate(row):
                continue
            selected.append(_record_from_row(profile_id, row))
            if len(selected) >= limit:
                break
        return selected

    def _update(self, profile_id: str, apply: Callable[[dict[str, Any]], bool]) -> bool:
        with self._lock:
            data = self._load()
            row = data["profiles"].get(profile_id)
            if row is None:
                return False
            row.setdefault("reminder", _new_reminder_row())
            if not apply(row):
                return False
            self._save(data)
        return True

    def get(self, profile_id: str) -> ProfileRecord | None:
        with self._lock:
            row = self._load()["profiles"].get(profile_id)
        if row is None:
            return None
        return _record_from_row(profile_id, row)

    def find_scheduled(
        self,
        window_start: datetime | None,
        window_end: datetime,
        *,
        exclude_processed: bool = False,
        after: str | None = None,
        limit: int = 100,
    ) -> list[ProfileRecord]:
        def matches(row: dict[str, Any]) -> bool:
            reminder = row.get("reminder") or {}
            if row.get("deleted") or not reminder.get("active", True):
                return False
            next_reminder = _load_instant(reminder.get("next_reminder"))
            if next_reminder is None or next_reminder > window_end:
                return False
            if window_start is not None and next_reminder < window_start:
                return False
            if exclude_processed:
                year = occurrence_year(next_reminder, row.get("timezone"))
                if reminder.get("last_processed_year") == year:
                    return False
            return True

        return self._select(matches, after, limit)

    def find_unscheduled(self, *, after: str | None = None, limit: int = 100) -> list[ProfileRecord]:
        def matches(row: dict[str, Any]) -> bool:
            reminder = row.get("reminder") or {}
            return not row.get("deleted") and reminder.get("next_reminder") is None

        return self._select(matches, after, limit)

    def find_profiles(self, *, after: str | None = None, limit: int = 100) -> list[ProfileRecord]:
        return self._select(lambda row: not row.get("deleted"), after, limit)

    def upsert_profile(self, profile: UserBirthdayProfile) -> ProfileRecord:
        with self._lock:
            data = self._load()
            row = data["profiles"].setdefault(profile.profile_id, {"reminder": _new_reminder_row()})
            row.update(
                {
                    "name": profile.display_name,
                    "month": profile.birthday_month,
                    "day": profile.birthday_day,
                    "year": profile.birth_year,
                    "timezone": profile.timezone,
                    "deleted": False,
                }
            )
            row.setdefault("reminder", _new_reminder_row())
            self._save(data)
        return _record_from_row(profile.profile_id, row)

    def soft_delete_profile(self, profile_id: str) -> bool:
        def apply(row: dict[str, Any]) -> bool:
            if row.get("deleted"):
                return False
            row["deleted"] = True
            return True

        return self._update(profile_id, apply)

    def mark_processed(
        self,
        profile_id: str,
        year: int,
        next_reminder: datetime | None,
        *,
        expected_next_reminder: datetime | None,
    ) -> bool:
        def apply(row: dict[str, Any]) -> bool:
            reminder = row["reminder"]
            if row.get("deleted") or not reminder.get("active", True):
                return False
            if _load_instant(reminder.get("next_reminder")) != expected_next_reminder:
                return False
            reminder["last_processed_year"] = year
            reminder["next_reminder"] = _dump_instant(next_reminder)
            return True

        return self._update(profile_id, apply)

    def set_next_reminder(
        self,
        profile_id: str,
        next_reminder: datetime | None,
        *,
        only_if_unset: bool = False,
        expected_next_reminder: datetime | None = None,
    ) -> bool:
        def apply(row: dict[str, Any]) -> bool:
            reminder = row["reminder"]
            if row.get("deleted"):
                return False
            if only_if_unset and reminder.get("next_reminder") is not None:
                return False
            if (
                expected_next_reminder is not None
                and _load_instant(reminder.get("next_reminder")) != expected_next_reminder
            ):
                return False
            reminder["next_reminder"] = _dump_instant(next_reminder)
            reminder["active"] = True
            return True

        return self._update(profile_id, apply)

    def deactivate(self, profile_id: str) -> bool:
        def apply(row: dict[str, Any]) -> bool:
            reminder = row["reminder"]
            if not reminder.get("active", True):
                return False
            reminder["active"] = False
            return True

        return self._update(profile_id, apply)

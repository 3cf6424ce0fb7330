from __future__ import annotations

import logging
from dataclasses import dataclass

from birthday_reminders.cursor import BatchCursor
from birthday_reminders.date_logic import next_occurrence
from birthday_reminders.models import ProfileRecord, UserBirthdayProfile
from birthday_reminders.processors import DEFAULT_BATCH_SIZE, Clock, utc_now
from birthday_reminders.store import ReminderStateStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterSyncReport:
    saved: int
    unchanged: int
    removed: int


def _schedule_inputs(profile: UserBirthdayProfile) -> tuple[int | None, int | None, str | None]:
    return profile.birthday_month, profile.birthday_day, profile.timezone


class ProfileReminderService:
    """Keeps reminder state in step with profile create/update/delete calls."""

    def __init__(self, *, store: ReminderStateStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def save_profile(self, profile: UserBirthdayProfile) -> ProfileRecord | None:
        self._store.upsert_profile(profile)

        next_reminder = next_occurrence(
            profile.birthday_month,
            profile.birthday_day,
            profile.timezone,
            self._clock(),
        )
        if next_reminder is None:
            LOGGER.warning(
                "Cannot schedule birthday reminder for profile %s: missing birthday or timezone",
                profile.profile_id,
            )

        self._store.set_next_reminder(profile.profile_id, next_reminder)
        if next_reminder is not None:
            LOGGER.info(
                "Next birthday reminder for %s (%s) set to %s",
                profile.display_name,
                profile.profile_id,
                next_reminder.isoformat(),
            )
        return self._store.get(profile.profile_id)

    def remove_profile(self, profile_id: str) -> bool:
        removed = self._store.soft_delete_profile(profile_id)
        self._store.deactivate(profile_id)
        if removed:
            LOGGER.info("Birthday reminder for profile %s deactivated", profile_id)
        return removed

    def sync_roster(
        self,
        profiles: list[UserBirthdayProfile],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> RosterSyncReport:
        wanted = {profile.profile_id: profile for profile in profiles}
        existing: dict[str, ProfileRecord] = {}
        stale: list[str] = []

        cursor = BatchCursor(
            lambda after, limit: self._store.find_profiles(after=after, limit=limit),
            batch_size,
        )
        for page in cursor:
            for record in page:
                if record.profile_id in wanted:
                    existing[record.profile_id] = record
                else:
                    stale.append(record.profile_id)

        saved = unchanged = 0
        for profile in profiles:
            record = existing.get(profile.profile_id)
            if record is not None and record.profile == profile:
                unchanged += 1
                continue
            if record is not None and _schedule_inputs(record.profile) == _schedule_inputs(profile):
                # Name-only edits keep the current schedule.
                self._store.upsert_profile(profile)
            else:
                self.save_profile(profile)
            saved += 1

        for profile_id in stale:
            self.remove_profile(profile_id)

        LOGGER.info(
            "Roster sync complete. Saved %s, unchanged %s, removed %s",
            saved,
            unchanged,
            len(stale),
        )
        return RosterSyncReport(saved=saved, unchanged=unchanged, removed=len(stale))

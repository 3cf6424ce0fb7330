from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from birthday_reminders.cursor import BatchCursor
from birthday_reminders.date_logic import next_occurrence, occurrence_year
from birthday_reminders.errors import ReminderError, SinkError
from birthday_reminders.models import ItemFailure, NotificationKind, ProfileRecord, ScanResult
from birthday_reminders.notifications import NotificationSink
from birthday_reminders.store import ReminderStateStore

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_BATCH_SIZE = 100
DEFAULT_HORIZON = timedelta(hours=1)
DEFAULT_LOOKBACK = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def following_occurrence(record: ProfileRecord, now: datetime) -> datetime | None:
    """Next occurrence strictly after both ``now`` and the stored reminder."""
    after = now
    current = record.reminder.next_reminder
    if current is not None and current > after:
        after = current
    profile = record.profile
    return next_occurrence(
        profile.birthday_month,
        profile.birthday_day,
        profile.timezone,
        after + timedelta(seconds=1),
    )


class _ScheduledReminderScan:
    kind = NotificationKind.ON_TIME
    label = "reminder"

    def __init__(
        self,
        *,
        store: ReminderStateStore,
        sink: NotificationSink,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock

    async def _scan(
        self,
        *,
        now: datetime,
        window_start: datetime | None,
        window_end: datetime,
        exclude_processed: bool,
        batch_size: int,
    ) -> ScanResult:
        result = ScanResult()
        cursor = BatchCursor(
            lambda after, limit: self._store.find_scheduled(
                window_start,
                window_end,
                exclude_processed=exclude_processed,
                after=after,
                limit=limit,
            ),
            batch_size,
        )

        try:
            for page in cursor:
                for record in page:
                    result.visited += 1
                    try:
                        await self._process(record, now, result)
                    except ReminderError as exc:
                        LOGGER.error(
                            "Error processing %s for profile %s (%s): %s",
                            self.label,
                            record.profile_id,
                            exc.kind.value,
                            exc,
                        )
                        result.failures.append(
                            ItemFailure(profile_id=record.profile_id, kind=exc.kind, message=str(exc))
                        )
        except ReminderError as exc:
            LOGGER.error(
                "Aborted %s scan after %s notifications (%s): %s",
                self.label,
                result.notified,
                exc.kind.value,
                exc,
            )
            result.error = exc

        LOGGER.info(
            "%s scan complete. Visited %s profiles, sent %s notifications, %s failures",
            self.label.capitalize(),
            result.visited,
            result.notified,
            len(result.failures),
        )
        return result

    async def _process(
        self,
        record: ProfileRecord,
        now: datetime,
        result: ScanResult,
    ) -> None:
        current = record.reminder.next_reminder
        year = occurrence_year(current, record.profile.timezone)
        following = following_occurrence(record, now)

        if record.reminder.last_processed_year == year:
            # Already notified for this occurrence; only push the reminder forward.
            if self._store.set_next_reminder(record.profile_id, following, expected_next_reminder=current):
                result.rescheduled += 1
            else:
                self._skip_changed(record, result)
            return

        await self._notify(record)
        result.notified += 1
        if not self._store.mark_processed(
            record.profile_id,
            year,
            following,
            expected_next_reminder=current,
        ):
            self._skip_changed(record, result)

    @staticmethod
    def _skip_changed(record: ProfileRecord, result: ScanResult) -> None:
        LOGGER.info("Profile %s changed during the scan; keeping its new schedule", record.profile_id)
        result.skipped += 1

    async def _notify(self, record: ProfileRecord) -> None:
        try:
            await self._sink.notify(record.profile_id, record.profile.display_name, self.kind)
        except Exception as exc:
            raise SinkError(f"Notification sink failed: {exc}") from exc


class DueReminderProcessor(_ScheduledReminderScan):
    """Fires reminders that become due within the look-ahead horizon."""

    kind = NotificationKind.ON_TIME
    label = "due reminder"

    async def run(
        self,
        horizon: timedelta = DEFAULT_HORIZON,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ScanResult:
        now = self._clock()
        LOGGER.info("Processing birthday reminders due before %s", (now + horizon).isoformat())
        return await self._scan(
            now=now,
            window_start=None,
            window_end=now + horizon,
            exclude_processed=False,
            batch_size=batch_size,
        )


class MissedReminderRecovery(_ScheduledReminderScan):
    """Sends belated notifications for reminders that fell due while the process was down."""

    kind = NotificationKind.BELATED
    label = "missed reminder"

    async def run(
        self,
        lookback: timedelta = DEFAULT_LOOKBACK,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ScanResult:
        now = self._clock()
        LOGGER.info("Processing missed birthday reminders from the last %s", lookback)
        return await self._scan(
            now=now,
            window_start=now - lookback,
            window_end=now,
            exclude_processed=True,
            batch_size=batch_size,
        )


class InitializationSweep:
    """Seeds ``next_reminder`` for profiles that have never been scheduled."""

    def __init__(self, *, store: ReminderStateStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def run(self, batch_size: int = DEFAULT_BATCH_SIZE) -> ScanResult:
        now = self._clock()
        result = ScanResult()
        cursor = BatchCursor(
            lambda after, limit: self._store.find_unscheduled(after=after, limit=limit),
            batch_size,
        )

        try:
            for page in cursor:
                for record in page:
                    result.visited += 1
                    profile = record.profile
                    next_reminder = next_occurrence(
                        profile.birthday_month,
                        profile.birthday_day,
                        profile.timezone,
                        now,
                    )
                    if next_reminder is None:
                        LOGGER.warning("Cannot initialize reminder for profile %s", record.profile_id)
                        continue
                    try:
                        if self._store.set_next_reminder(record.profile_id, next_reminder, only_if_unset=True):
                            result.initialized += 1
                    except ReminderError as exc:
                        LOGGER.error("Error initializing reminder for profile %s: %s", record.profile_id, exc)
                        result.failures.append(
                            ItemFailure(profile_id=record.profile_id, kind=exc.kind, message=str(exc))
                        )
        except ReminderError as exc:
            LOGGER.error("Aborted reminder initialization (%s): %s", exc.kind.value, exc)
            result.error = exc

        LOGGER.info(
            "Birthday reminder initialization complete. Visited %s profiles, initialized %s",
            result.visited,
            result.initialized,
        )
        return result

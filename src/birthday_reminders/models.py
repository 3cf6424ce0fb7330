from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from birthday_reminders.errors import ErrorKind, ReminderError


class NotificationKind(str, Enum):
    ON_TIME = "on-time"
    BELATED = "belated"


@dataclass(frozen=True)
class UserBirthdayProfile:
    profile_id: str
    display_name: str
    birthday_month: int | None
    birthday_day: int | None
    timezone: str | None
    birth_year: int | None = None

    @property
    def schedulable(self) -> bool:
        return (
            self.birthday_month is not None
            and self.birthday_day is not None
            and bool(self.timezone)
        )


@dataclass(frozen=True)
class ReminderState:
    active: bool = True
    next_reminder: datetime | None = None
    last_processed_year: int | None = None


@dataclass(frozen=True)
class ProfileRecord:
    profile: UserBirthdayProfile
    reminder: ReminderState
    deleted: bool = False

    @property
    def profile_id(self) -> str:
        return self.profile.profile_id


@dataclass(frozen=True)
class ItemFailure:
    profile_id: str
    kind: ErrorKind
    message: str


@dataclass
class ScanResult:
    """Outcome of one scanner run.

    ``error`` is set when the run was aborted before draining; the counters
    then describe the partial pass.
    """

    visited: int = 0
    notified: int = 0
    rescheduled: int = 0
    skipped: int = 0
    initialized: int = 0
    failures: list[ItemFailure] = field(default_factory=list)
    error: ReminderError | None = None

    @property
    def aborted(self) -> bool:
        return self.error is not None

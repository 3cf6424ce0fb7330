from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from birthday_reminders.models import NotificationKind, UserBirthdayProfile


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_profile(
    profile_id: str,
    *,
    name: str | None = None,
    month: int | None = 5,
    day: int | None = 15,
    tz_name: str | None = "UTC",
    year: int | None = None,
) -> UserBirthdayProfile:
    return UserBirthdayProfile(
        profile_id=profile_id,
        display_name=name or profile_id.capitalize(),
        birthday_month=month,
        birthday_day=day,
        timezone=tz_name,
        birth_year=year,
    )


@dataclass
class FakeSink:
    calls: list[tuple[str, str, NotificationKind]] = field(default_factory=list)
    failing_ids: set[str] = field(default_factory=set)

    async def notify(self, profile_id: str, display_name: str, kind: NotificationKind) -> None:
        if profile_id in self.failing_ids:
            raise ConnectionError(f"delivery failed for {profile_id}")
        self.calls.append((profile_id, display_name, kind))



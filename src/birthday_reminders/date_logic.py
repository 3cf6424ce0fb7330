from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from birthday_reminders.errors import ErrorKind, ReminderError

LOGGER = logging.getLogger(__name__)

FIRE_HOUR = 9


class InvalidBirthdayError(ReminderError, ValueError):
    kind = ErrorKind.VALIDATION


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def validate_month_day(month: int, day: int, *, allow_feb_29: bool = True) -> None:
    if month < 1 or month > 12:
        raise InvalidBirthdayError(f"Invalid month: {month}")

    if day < 1 or day > 31:
        raise InvalidBirthdayError(f"Invalid day: {day}")

    year = 2000 if allow_feb_29 else 2001
    try:
        date(year, month, day)
    except ValueError as exc:
        raise InvalidBirthdayError(f"Invalid month/day combination: {month:02d}-{day:02d}") from exc


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidBirthdayError(f"Unknown timezone: {name}") from exc


def birthday_date_for_year(month: int, day: int, year: int) -> date:
    # Leap-day birthdays roll forward to March 1st, never back to Feb 28th.
    if month == 2 and day == 29 and not is_leap_year(year):
        return date(year, 3, 1)
    return date(year, month, day)


def _fire_instant(month: int, day: int, year: int, tz: ZoneInfo, fire_hour: int) -> datetime:
    local_day = birthday_date_for_year(month, day, year)
    local = datetime(local_day.year, local_day.month, local_day.day, fire_hour, tzinfo=tz)
    return local.astimezone(timezone.utc)


def next_occurrence(
    month: int | None,
    day: int | None,
    timezone_name: str | None,
    now: datetime,
    *,
    fire_hour: int = FIRE_HOUR,
) -> datetime | None:
    """Return the next reminder instant (UTC) on or after ``now``.

    The reminder fires at ``fire_hour`` local time in ``timezone_name``. The
    current year is taken from ``now`` as seen in that timezone. Returns
    ``None`` when the birthday or timezone is missing or invalid.
    """
    if month is None or day is None or not timezone_name:
        LOGGER.warning("Cannot compute next reminder: missing birthday or timezone")
        return None

    try:
        validate_month_day(month, day)
        tz = resolve_timezone(timezone_name)
    except InvalidBirthdayError as exc:
        LOGGER.warning("Cannot compute next reminder: %s", exc)
        return None

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now_utc = now.astimezone(timezone.utc)
    current_year = now.astimezone(tz).year

    candidate = _fire_instant(month, day, current_year, tz, fire_hour)
    if candidate < now_utc:
        candidate = _fire_instant(month, day, current_year + 1, tz, fire_hour)
    return candidate


def occurrence_year(instant: datetime, timezone_name: str | None) -> int:
    """Birthday year an occurrence belongs to: its year in the profile's timezone."""
    if timezone_name:
        try:
            return instant.astimezone(resolve_timezone(timezone_name)).year
        except InvalidBirthdayError:
            LOGGER.warning("Unknown timezone %s; using the UTC year", timezone_name)
    return instant.astimezone(timezone.utc).year

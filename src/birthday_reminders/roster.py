from __future__ import annotations

import os
import re
import tempfile
import tomllib
from datetime import date
from pathlib import Path
from typing import Any

from birthday_reminders.date_logic import InvalidBirthdayError, resolve_timezone, validate_month_day
from birthday_reminders.models import UserBirthdayProfile


def _toml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def parse_birthday_text(raw_text: str) -> tuple[int, int, int | None]:
    value = raw_text.strip()

    full_match = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", value)
    if full_match:
        year = int(full_match.group(1))
        month = int(full_match.group(2))
        day = int(full_match.group(3))
        try:
            date(year, month, day)
        except ValueError as exc:
            raise InvalidBirthdayError(str(exc)) from exc
        return month, day, year

    short_match = re.fullmatch(r"(\d{2})-(\d{2})", value)
    if short_match:
        month = int(short_match.group(1))
        day = int(short_match.group(2))
        validate_month_day(month, day, allow_feb_29=True)
        return month, day, None

    raise InvalidBirthdayError("Birthday must use YYYY-MM-DD or MM-DD")


def format_birthday(profile: UserBirthdayProfile) -> str | None:
    if profile.birthday_month is None or profile.birthday_day is None:
        return None
    month_day = f"{profile.birthday_month:02d}-{profile.birthday_day:02d}"
    if profile.birth_year is not None:
        return f"{profile.birth_year:04d}-{month_day}"
    return month_day


def _profile_from_row(row: dict[str, Any]) -> UserBirthdayProfile:
    profile_id = str(row.get("id", "")).strip()
    if not profile_id:
        raise ValueError("profile id must not be empty")

    name = str(row.get("name", "")).strip()
    if not name:
        raise ValueError(f"profile {profile_id}: name must not be empty")

    month = day = year = None
    raw_birthday = row.get("birthday")
    if raw_birthday is not None:
        try:
            month, day, year = parse_birthday_text(str(raw_birthday))
        except InvalidBirthdayError as exc:
            raise ValueError(f"profile {profile_id}: {exc}") from exc

    timezone_name = row.get("timezone")
    if timezone_name is not None:
        timezone_name = str(timezone_name).strip()
        try:
            resolve_timezone(timezone_name)
        except InvalidBirthdayError as exc:
            raise ValueError(f"profile {profile_id}: {exc}") from exc

    return UserBirthdayProfile(
        profile_id=profile_id,
        display_name=name,
        birthday_month=month,
        birthday_day=day,
        timezone=timezone_name or None,
        birth_year=year,
    )


def load_roster(path: Path) -> list[UserBirthdayProfile]:
    if not path.exists():
        return []

    with path.open("rb") as file_obj:
        data = tomllib.load(file_obj)

    profiles: list[UserBirthdayProfile] = []
    seen: set[str] = set()
    for row in data.get("profiles", []):
        profile = _profile_from_row(row)
        if profile.profile_id in seen:
            raise ValueError(f"duplicate profile id: {profile.profile_id}")
        seen.add(profile.profile_id)
        profiles.append(profile)
    return profiles


def render_roster(profiles: list[UserBirthdayProfile]) -> str:
    lines: list[str] = [
        "# Birthday profiles. Reminders fire at 09:00 in each profile's timezone.",
        "",
    ]

    for profile in profiles:
        lines.append("[[profiles]]")
        lines.append(f'id = "{_toml_escape(profile.profile_id)}"')
        lines.append(f'name = "{_toml_escape(profile.display_name)}"')
        birthday = format_birthday(profile)
        if birthday is not None:
            lines.append(f'birthday = "{birthday}"')
        if profile.timezone:
            lines.append(f'timezone = "{_toml_escape(profile.timezone)}"')
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def save_roster_atomic(path: Path, profiles: list[UserBirthdayProfile]) -> None:
    rendered = render_roster(profiles)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        delete=False,
    ) as temp_file:
        temp_file.write(rendered)
        temp_name = temp_file.name

    os.replace(temp_name, path)


def ensure_default_roster(path: Path) -> None:
    if path.exists():
        return
    save_roster_atomic(path, [])

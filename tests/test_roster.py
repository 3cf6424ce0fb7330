from pathlib import Path

import pytest

from birthday_reminders.date_logic import InvalidBirthdayError
from birthday_reminders.roster import ensure_default_roster, load_roster, parse_birthday_text, save_roster_atomic

from support import make_profile


def test_roundtrip_roster(tmp_path: Path) -> None:
    path = tmp_path / "profiles.toml"
    profiles = [
        make_profile("alice", name='Alice "Al" Smith', month=3, day=14, tz_name="Europe/Berlin", year=1990),
        make_profile("bob", month=2, day=29, tz_name=None),
    ]

    save_roster_atomic(path, profiles)

    assert load_roster(path) == profiles


def test_missing_roster_is_empty(tmp_path: Path) -> None:
    assert load_roster(tmp_path / "absent.toml") == []


def test_ensure_default_roster_does_not_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "config" / "profiles.toml"
    ensure_default_roster(path)
    assert load_roster(path) == []

    save_roster_atomic(path, [make_profile("alice")])
    ensure_default_roster(path)

    assert [profile.profile_id for profile in load_roster(path)] == ["alice"]


def _write(path: Path, body: str) -> Path:
    path.write_text(body.strip() + "\n", encoding="utf-8")
    return path


def test_unknown_timezone_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "profiles.toml",
        """
[[profiles]]
id = "alice"
name = "Alice"
birthday = "03-14"
timezone = "Mars/Olympus_Mons"
""",
    )

    with pytest.raises(ValueError, match="alice"):
        load_roster(path)


def test_duplicate_ids_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "profiles.toml",
        """
[[profiles]]
id = "alice"
name = "Alice"

[[profiles]]
id = "alice"
name = "Alice Again"
""",
    )

    with pytest.raises(ValueError, match="duplicate"):
        load_roster(path)


def test_parse_birthday_text_formats() -> None:
    assert parse_birthday_text("1990-03-14") == (3, 14, 1990)
    assert parse_birthday_text("02-29") == (2, 29, None)

    with pytest.raises(InvalidBirthdayError):
        parse_birthday_text("2023-02-29")
    with pytest.raises(InvalidBirthdayError):
        parse_birthday_text("14/03/1990")

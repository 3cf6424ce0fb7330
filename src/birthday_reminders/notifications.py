from __future__ import annotations

import hashlib
import logging
from typing import Protocol

from telegram import Bot

from birthday_reminders.models import NotificationKind

LOGGER = logging.getLogger(__name__)

ON_TIME_TEMPLATES = (
    "🎉 It's {person_name}'s birthday today!\nThis is not a drill.",
    "🥳 Today we celebrate {person_name}.\nGo make it count.",
    "🚨 Birthday Alert 🚨\n{person_name}'s big day has arrived.",
    "🎈 {person_name} leveled up today.\nAchievement unlocked.",
    "🎂 It's {person_name} Day™.",
    "📢 Public service announcement:\n{person_name} was born on this day.\nCake is appropriate.",
    "🎊 The calendar has spoken - it's {person_name}'s birthday.",
    "🌟 Today's featured human: {person_name}.",
)

BELATED_TEMPLATES = (
    "🎂 Belated happy birthday to {person_name}!\nThe reminder ran late, the wishes did not.",
    "⏰ We missed the moment, but not the day: happy birthday, {person_name}!",
    "🎈 A little late to the party - happy birthday, {person_name}.",
    "📬 Delivered with a delay: birthday wishes for {person_name}.",
    "🎁 Better late than never. Happy birthday, {person_name}!",
)


class NotificationSink(Protocol):
    async def notify(self, profile_id: str, display_name: str, kind: NotificationKind) -> None: ...


def select_template(profile_id: str, kind: NotificationKind) -> str:
    templates = BELATED_TEMPLATES if kind is NotificationKind.BELATED else ON_TIME_TEMPLATES
    seed = f"{profile_id}|{kind.value}"
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    index = int.from_bytes(digest[:4], "big") % len(templates)
    return templates[index]


def format_notification(profile_id: str, display_name: str, kind: NotificationKind) -> str:
    person_name = display_name.strip() or f"User {profile_id}"
    return select_template(profile_id, kind).format(person_name=person_name)


class TelegramNotificationSink:
    """Posts birthday notifications into a single Telegram chat."""

    def __init__(self, *, bot: Bot, chat_id: int) -> None:
        self._bot = bot
        self._chat_id = chat_id

    async def notify(self, profile_id: str, display_name: str, kind: NotificationKind) -> None:
        message = format_notification(profile_id, display_name, kind)
        await self._bot.send_message(chat_id=self._chat_id, text=message)
        LOGGER.info("Sent %s birthday notification for %s", kind.value, profile_id)

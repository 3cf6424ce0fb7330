import asyncio
from dataclasses import dataclass, field

from birthday_reminders.models import NotificationKind
from birthday_reminders.notifications import (
    BELATED_TEMPLATES,
    ON_TIME_TEMPLATES,
    TelegramNotificationSink,
    format_notification,
)


@dataclass
class FakeBot:
    sent_messages: list[tuple[int, str]] = field(default_factory=list)

    async def send_message(self, chat_id: int, text: str) -> None:
        self.sent_messages.append((chat_id, text))


def test_format_notification_is_deterministic() -> None:
    first = format_notification("person-123", "Alice", NotificationKind.ON_TIME)
    second = format_notification("person-123", "Alice", NotificationKind.ON_TIME)

    assert first == second
    assert "Alice" in first
    assert first in {template.format(person_name="Alice") for template in ON_TIME_TEMPLATES}


def test_belated_notification_uses_belated_templates() -> None:
    message = format_notification("person-123", "Alice", NotificationKind.BELATED)

    assert message in {template.format(person_name="Alice") for template in BELATED_TEMPLATES}


def test_blank_name_falls_back_to_profile_id() -> None:
    message = format_notification("person-9", "  ", NotificationKind.ON_TIME)

    assert "User person-9" in message


def test_telegram_sink_sends_to_configured_chat() -> None:
    bot = FakeBot()
    sink = TelegramNotificationSink(bot=bot, chat_id=100)

    asyncio.run(sink.notify("person-1", "Bob", NotificationKind.BELATED))

    assert len(bot.sent_messages) == 1
    chat_id, text = bot.sent_messages[0]
    assert chat_id == 100
    assert "Bob" in text

from __future__ import annotations

import logging
from pathlib import Path

from telegram.ext import Application, CallbackContext

from birthday_reminders.notifications import TelegramNotificationSink
from birthday_reminders.processors import DueReminderProcessor, InitializationSweep, MissedReminderRecovery
from birthday_reminders.profile_service import ProfileReminderService
from birthday_reminders.roster import ensure_default_roster, load_roster
from birthday_reminders.settings import Settings, load_settings
from birthday_reminders.store import JsonReminderStore

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


async def due_reminders_job(context: CallbackContext) -> None:
    settings: Settings = context.application.bot_data["settings"]
    processor: DueReminderProcessor = context.application.bot_data["due_processor"]
    result = await processor.run(horizon=settings.horizon, batch_size=settings.batch_size)
    if result.aborted:
        LOGGER.warning("Due reminder run aborted; retrying on the next tick")


async def missed_reminders_job(context: CallbackContext) -> None:
    settings: Settings = context.application.bot_data["settings"]
    recovery: MissedReminderRecovery = context.application.bot_data["missed_recovery"]
    result = await recovery.run(lookback=settings.missed_lookback, batch_size=settings.batch_size)
    if result.aborted:
        LOGGER.warning("Missed reminder recovery aborted; the hourly scan will pick up what it can")


async def startup_sync(application: Application) -> None:
    settings: Settings = application.bot_data["settings"]
    profile_service: ProfileReminderService = application.bot_data["profile_service"]
    sweep: InitializationSweep = application.bot_data["initialization_sweep"]

    profile_service.sync_roster(load_roster(settings.profile_roster_path), batch_size=settings.batch_size)
    await sweep.run(batch_size=settings.batch_size)


def build_application(settings: Settings) -> Application:
    application = Application.builder().token(settings.telegram_bot_token).build()

    store = JsonReminderStore(settings.reminder_store_path)
    sink = TelegramNotificationSink(bot=application.bot, chat_id=settings.telegram_chat_id)

    application.bot_data["settings"] = settings
    application.bot_data["profile_service"] = ProfileReminderService(store=store)
    application.bot_data["initialization_sweep"] = InitializationSweep(store=store)
    application.bot_data["due_processor"] = DueReminderProcessor(store=store, sink=sink)
    application.bot_data["missed_recovery"] = MissedReminderRecovery(store=store, sink=sink)

    application.job_queue.run_repeating(
        due_reminders_job,
        interval=settings.scan_interval,
        first=settings.missed_settle_delay * 2,
        name="due-birthday-reminders",
    )
    application.job_queue.run_once(
        missed_reminders_job,
        when=settings.missed_settle_delay,
        name="missed-birthday-reminders",
    )

    application.post_init = startup_sync
    return application


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    _ensure_parent(settings.profile_roster_path)
    _ensure_parent(settings.reminder_store_path)
    ensure_default_roster(settings.profile_roster_path)

    application = build_application(settings)
    application.run_polling()


if __name__ == "__main__":
    main()

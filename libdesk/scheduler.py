import logging

from apscheduler.schedulers.background import BackgroundScheduler

from libdesk.config import settings
from libdesk.db import session_scope
from libdesk.metrics import run_timed_job
from libdesk.services.reminder_service import send_expiration_reminders


scheduler = BackgroundScheduler(timezone=settings.app_timezone)
logger = logging.getLogger(__name__)


def _with_db(task):
    with session_scope() as db:
        return task(db)


def _run_job(label: str, task) -> None:
    run_timed_job(label, lambda: _with_db(task))


def expiration_reminders_job():
    _run_job('expiration_reminders', send_expiration_reminders)


def _parse_hhmm(value: str, default_hour: int = 16, default_minute: int = 0) -> tuple[int, int]:
    try:
        hour_raw, minute_raw = (value or '').split(':', 1)
        hour = int(hour_raw)
        minute = int(minute_raw)
    except ValueError:
        return default_hour, default_minute
    if hour < 0 or hour > 23 or minute < 0 or minute > 59:
        return default_hour, default_minute
    return hour, minute


def start_scheduler():
    if not settings.enable_scheduler:
        logger.info('scheduler_disabled')
        return
    hour, minute = _parse_hhmm(settings.reminder_time)
    scheduler.add_job(
        expiration_reminders_job,
        'cron',
        hour=hour,
        minute=minute,
        id='expiration_reminders',
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)

"""Operator checks for a libdesk deployment.

Run from the repository root: ``python healthcheck.py``. Exits non-zero when any check fails.
"""

from pathlib import Path
import sys

import httpx
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text

from libdesk.config import settings
from libdesk.db import engine, session_scope
from libdesk.models import Role, User
from libdesk.scheduler import scheduler, start_scheduler, stop_scheduler
from libdesk.services.settings_service import get_settings


ROOT_DIR = Path(__file__).resolve().parent
EXPECTED_JOBS = {'expiration_reminders'}
CHECKS = []

GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def check(title):
    def register(fn):
        CHECKS.append((title, fn))
        return fn

    return register


@check('Database accepts writes')
def database_writable():
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE IF NOT EXISTS _libdesk_write_check (note VARCHAR(16))"))
        conn.execute(text("INSERT INTO _libdesk_write_check (note) VALUES ('ok')"))
        conn.execute(text("DROP TABLE _libdesk_write_check"))
    return f'dialect={engine.dialect.name}'


@check('Migrations at head')
def migrations_at_head():
    script = ScriptDirectory.from_config(Config(str(ROOT_DIR / 'alembic.ini')))
    heads = set(script.get_heads())
    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()
    if current is None:
        raise RuntimeError('database is not stamped; run `alembic upgrade head`')
    if current not in heads:
        raise RuntimeError(f'revision {current} behind head {sorted(heads)}')
    return f'revision={current}'


@check('Configuration')
def configuration():
    blank = [
        name
        for name, value in (
            ('DATABASE_URL', settings.database_url),
            ('AUTH_SECRET', settings.auth_secret),
            ('APP_TIMEZONE', settings.app_timezone),
        )
        if not str(value).strip()
    ]
    if blank:
        raise RuntimeError(f'unset: {", ".join(blank)}')
    if settings.auth_secret == 'change-me':
        raise RuntimeError('AUTH_SECRET is still the development default')
    return f'env={settings.app_env} tz={settings.app_timezone}'


@check('Admin account')
def admin_account():
    with session_scope() as db:
        admins = db.query(User).filter(User.role == Role.ADMIN.value).count()
    if not admins:
        raise RuntimeError('no admin user; start the app once or run scripts/init_db.py')
    return f'admins={admins}'


@check('Library settings')
def library_settings():
    with session_scope() as db:
        values = get_settings(db)
    return (
        f"registration_start={values['registration_number_start']} "
        f"expiring_window={values['days_before_expiration']}d"
    )


@check('Reminder webhook')
def reminder_webhook():
    url = (settings.reminder_webhook_url or '').strip()
    if not url:
        return 'not configured; reminders are skipped'
    response = httpx.head(url, timeout=settings.reminder_timeout_seconds)
    if response.status_code >= 500:
        raise RuntimeError(f'webhook answered HTTP {response.status_code}')
    return f'HTTP {response.status_code}'


@check('Scheduler jobs')
def scheduler_jobs():
    if not settings.enable_scheduler:
        return 'disabled by ENABLE_SCHEDULER'
    start_scheduler()
    try:
        registered = {job.id for job in scheduler.get_jobs()}
    finally:
        stop_scheduler()
    missing = EXPECTED_JOBS - registered
    if missing:
        raise RuntimeError(f'missing jobs: {sorted(missing)}')
    return f'jobs={sorted(registered)}'


def main() -> int:
    failures = 0
    for title, fn in CHECKS:
        try:
            detail = fn()
        except Exception as exc:
            failures += 1
            print(f'{RED}FAIL{RESET} {title}: {exc}')
        else:
            print(f'{GREEN}PASS{RESET} {title}: {detail}')
    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())

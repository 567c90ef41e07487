from __future__ import annotations

from sqlalchemy.orm import Session

from libdesk.config import settings
from libdesk.models import Setting


DEFAULT_REMINDER_MESSAGE = 'Hi {name}, your library membership ends on {membership_end}. Please renew to keep your seat.'


def _defaults() -> dict[str, str]:
    return {
        'registration_number_start': str(settings.registration_number_start),
        'days_before_expiration': str(settings.expiring_soon_days),
        'reminder_message': DEFAULT_REMINDER_MESSAGE,
    }


def _get_raw(db: Session, key: str) -> str:
    row = db.query(Setting).filter(Setting.key == key).first()
    if row and row.value not in (None, ''):
        return row.value
    return _defaults()[key]


def _as_int(value: str, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def get_registration_number_start(db: Session) -> int:
    return max(_as_int(_get_raw(db, 'registration_number_start'), settings.registration_number_start), 1)


def get_days_before_expiration(db: Session) -> int:
    return max(_as_int(_get_raw(db, 'days_before_expiration'), settings.expiring_soon_days), 0)


def get_reminder_message(db: Session) -> str:
    return _get_raw(db, 'reminder_message')


def get_settings(db: Session) -> dict:
    return {
        'registration_number_start': get_registration_number_start(db),
        'days_before_expiration': get_days_before_expiration(db),
        'reminder_message': get_reminder_message(db),
        'reminder_webhook_configured': bool(settings.reminder_webhook_url),
    }


def update_settings(db: Session, **changes) -> dict:
    for key in _defaults():
        value = changes.get(key)
        if value is None:
            continue
        row = db.query(Setting).filter(Setting.key == key).first()
        if row is None:
            row = Setting(key=key, value=str(value))
            db.add(row)
        else:
            row.value = str(value)
    db.commit()
    return get_settings(db)

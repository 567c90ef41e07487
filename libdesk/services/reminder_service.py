from __future__ import annotations

import logging

import httpx
from sqlalchemy.orm import Session

from libdesk.config import settings
from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.services import settings_service, student_service


logger = logging.getLogger(__name__)


def _render(template: str, student: dict) -> str:
    try:
        return template.format(
            name=student.get('name') or '',
            membership_end=student.get('membership_end') or '',
            days_remaining=student.get('days_remaining', ''),
            seat_number=student.get('seat_number') or '',
        )
    except (KeyError, IndexError, ValueError):
        logger.warning('reminder_template_invalid template=%r', template)
        return settings_service.DEFAULT_REMINDER_MESSAGE.format(
            name=student.get('name') or '',
            membership_end=student.get('membership_end') or '',
        )


def _post(url: str, payload: dict) -> bool:
    try:
        response = httpx.post(url, json=payload, timeout=settings.reminder_timeout_seconds)
    except httpx.HTTPError:
        logger.exception('reminder_send_failed student_id=%s', payload.get('student_id'))
        return False
    if response.status_code >= 400:
        logger.warning(
            'reminder_send_rejected student_id=%s status=%s',
            payload.get('student_id'),
            response.status_code,
        )
        return False
    return True


def send_expiration_reminders(
    db: Session,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    """Notify every active student whose membership ends inside the reminder window."""
    window = settings_service.get_days_before_expiration(db)
    students = student_service.list_expiring_soon(db, days=window, time_provider=time_provider)
    url = (settings.reminder_webhook_url or '').strip()
    if not url:
        logger.info('reminder_skip reason=webhook_not_configured candidates=%s', len(students))
        return {'candidates': len(students), 'sent': 0, 'failed': 0, 'skipped': True}

    template = settings_service.get_reminder_message(db)
    sent = failed = 0
    for student in students:
        payload = {
            'student_id': student['id'],
            'name': student['name'],
            'phone': student.get('phone'),
            'email': student.get('email'),
            'membership_end': student['membership_end'],
            'days_remaining': student.get('days_remaining'),
            'message': _render(template, student),
        }
        if _post(url, payload):
            sent += 1
        else:
            failed += 1
    logger.info('reminder_done candidates=%s sent=%s failed=%s', len(students), sent, failed)
    return {'candidates': len(students), 'sent': sent, 'failed': failed, 'skipped': False}

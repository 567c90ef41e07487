from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Literal


MembershipStatus = Literal['active', 'expired']
DisplayStatus = Literal['Active', 'Expired', 'Inactive']


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def membership_status(membership_end: date | datetime, today: date | datetime) -> MembershipStatus:
    """Date-derived status; independent of the manual ``is_active`` flag."""
    if _as_date(membership_end) < _as_date(today):
        return 'expired'
    return 'active'


def display_status(is_active: bool, membership_end: date | datetime, today: date | datetime) -> DisplayStatus:
    if not is_active:
        return 'Inactive'
    return 'Active' if membership_status(membership_end, today) == 'active' else 'Expired'


def is_expiring_soon(membership_end: date | datetime, today: date | datetime, within_days: int) -> bool:
    end = _as_date(membership_end)
    start = _as_date(today)
    return start <= end <= start + timedelta(days=max(int(within_days), 0))


def days_remaining(membership_end: date | datetime, today: date | datetime) -> int:
    return (_as_date(membership_end) - _as_date(today)).days


def validate_membership_period(membership_start: date, membership_end: date) -> None:
    if membership_end < membership_start:
        raise ValueError('membership_end cannot be before membership_start')

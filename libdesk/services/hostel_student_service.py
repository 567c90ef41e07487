from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session, joinedload, selectinload

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.membership import membership_status
from libdesk.domain.reconciliation import due_amount, round_money
from libdesk.models import HostelBranch, HostelStudent, HostelStudentHistory


logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    'address',
    'father_name',
    'mother_name',
    'aadhar_number',
    'phone_number',
    'profile_image_url',
    'aadhar_image_url',
    'registration_number',
    'remark',
)
_REQUIRED_TEXT_FIELDS = ('name', 'religion', 'food_preference', 'gender')


def serialize_stay(row: HostelStudentHistory) -> dict:
    return {
        'id': row.id,
        'student_id': row.student_id,
        'stay_start_date': row.stay_start_date.isoformat(),
        'stay_end_date': row.stay_end_date.isoformat(),
        'total_fee': round_money(row.total_fee),
        'cash_paid': round_money(row.cash_paid),
        'online_paid': round_money(row.online_paid),
        'due_amount': round_money(row.due_amount),
        'security_money_cash': round_money(row.security_money_cash),
        'security_money_online': round_money(row.security_money_online),
        'room_number': row.room_number,
        'remark': row.remark,
        'created_at': row.created_at.isoformat() if row.created_at else None,
    }


def latest_stay(student: HostelStudent) -> HostelStudentHistory | None:
    if not student.history:
        return None
    return max(student.history, key=lambda row: (row.stay_end_date, row.created_at, row.id))


def serialize_hostel_student(row: HostelStudent, *, with_latest: bool = False) -> dict:
    payload = {
        'id': row.id,
        'branch_id': row.branch_id,
        'branch_name': row.branch.name if row.branch else None,
        'name': row.name,
        'religion': row.religion,
        'food_preference': row.food_preference,
        'gender': row.gender,
        'room_number': row.room_number,
        'security_money': round_money(row.security_money),
        'security_money_cash': round_money(row.security_money_cash),
        'security_money_online': round_money(row.security_money_online),
        'created_at': row.created_at.isoformat() if row.created_at else None,
    }
    for name in _PROFILE_FIELDS:
        payload[name] = getattr(row, name)
    if with_latest:
        stay = latest_stay(row)
        payload['latest_stay'] = serialize_stay(stay) if stay else None
    return payload


def _student_query(db: Session):
    return db.query(HostelStudent).options(
        joinedload(HostelStudent.branch),
        selectinload(HostelStudent.history),
    )


def get_hostel_student(db: Session, student_id: int) -> HostelStudent:
    row = _student_query(db).filter(HostelStudent.id == student_id).first()
    if not row:
        raise RecordNotFoundError('Student not found')
    return row


def list_hostel_students(db: Session, *, branch_id: int | None = None) -> list[dict]:
    query = _student_query(db)
    if branch_id is not None:
        query = query.filter(HostelStudent.branch_id == branch_id)
    return [serialize_hostel_student(row, with_latest=True) for row in query.order_by(HostelStudent.name.asc()).all()]


def hostel_student_detail(db: Session, student_id: int) -> dict:
    row = get_hostel_student(db, student_id)
    stays = sorted(row.history, key=lambda stay: (stay.stay_start_date, stay.created_at, stay.id), reverse=True)
    return {
        'student': serialize_hostel_student(row),
        'history': [serialize_stay(stay) for stay in stays],
    }


def _check_branch(db: Session, branch_id: int) -> None:
    if not db.query(HostelBranch.id).filter(HostelBranch.id == branch_id).first():
        raise RecordNotFoundError(f'Branch with ID {branch_id} does not exist')


def _check_stay_period(start: date, end: date) -> None:
    if end < start:
        raise ValueError('stay_end_date cannot be before stay_start_date')


def _clean_text(value: str | None) -> str | None:
    return (value or '').strip() or None


def create_hostel_student(
    db: Session,
    data: dict,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    """Admit a resident: the profile plus the first stay record."""
    _check_branch(db, data['branch_id'])
    for name in _REQUIRED_TEXT_FIELDS + ('room_number',):
        if not _clean_text(data.get(name)):
            raise ValueError(f'{name} is required')
    _check_stay_period(data['stay_start_date'], data['stay_end_date'])

    security_cash = round_money(data.get('security_money_cash') or 0)
    security_online = round_money(data.get('security_money_online') or 0)
    room_number = _clean_text(data['room_number'])
    student = HostelStudent(
        branch_id=data['branch_id'],
        name=data['name'].strip(),
        religion=data['religion'].strip(),
        food_preference=data['food_preference'].strip(),
        gender=data['gender'].strip(),
        room_number=room_number,
        security_money_cash=security_cash,
        security_money_online=security_online,
        security_money=round_money(security_cash + security_online),
        **{name: _clean_text(data.get(name)) for name in _PROFILE_FIELDS},
    )
    cash = float(data.get('cash_paid') or 0)
    online = float(data.get('online_paid') or 0)
    student.history.append(
        HostelStudentHistory(
            stay_start_date=data['stay_start_date'],
            stay_end_date=data['stay_end_date'],
            total_fee=round_money(data['total_fee']),
            cash_paid=round_money(cash),
            online_paid=round_money(online),
            due_amount=round_money(due_amount(data['total_fee'], cash, online)),
            security_money_cash=security_cash,
            security_money_online=security_online,
            room_number=room_number,
            remark=_clean_text(data.get('remark')),
            created_at=data.get('created_at') or time_provider.naive_now(),
        )
    )
    db.add(student)
    db.commit()
    logger.info('hostel_student_created student_id=%s branch_id=%s', student.id, student.branch_id)
    row = get_hostel_student(db, student.id)
    return {'student': serialize_hostel_student(row), 'history': serialize_stay(row.history[0])}


def update_hostel_student(db: Session, student_id: int, changes: dict) -> dict:
    """Partial update of the profile; stay fields land on the latest stay record."""
    row = get_hostel_student(db, student_id)
    if changes.get('branch_id') is not None:
        _check_branch(db, changes['branch_id'])
        row.branch_id = changes['branch_id']
    for name in _REQUIRED_TEXT_FIELDS:
        if changes.get(name) is not None:
            value = _clean_text(changes[name])
            if not value:
                raise ValueError(f'{name} is required')
            setattr(row, name, value)
    for name in _PROFILE_FIELDS + ('room_number',):
        if name in changes:
            setattr(row, name, _clean_text(changes[name]))

    security_changed = changes.get('security_money_cash') is not None or changes.get('security_money_online') is not None
    if security_changed:
        if changes.get('security_money_cash') is not None:
            row.security_money_cash = round_money(changes['security_money_cash'])
        if changes.get('security_money_online') is not None:
            row.security_money_online = round_money(changes['security_money_online'])
        row.security_money = round_money(float(row.security_money_cash or 0) + float(row.security_money_online or 0))

    stay = latest_stay(row)
    if stay is not None:
        if 'room_number' in changes:
            stay.room_number = row.room_number
        if 'remark' in changes:
            stay.remark = row.remark
        if changes.get('security_money_cash') is not None:
            stay.security_money_cash = row.security_money_cash
        if changes.get('security_money_online') is not None:
            stay.security_money_online = row.security_money_online
        if any(changes.get(name) is not None for name in ('total_fee', 'cash_paid', 'online_paid')):
            for name in ('total_fee', 'cash_paid', 'online_paid'):
                if changes.get(name) is not None:
                    setattr(stay, name, round_money(changes[name]))
            stay.due_amount = round_money(due_amount(stay.total_fee, stay.cash_paid, stay.online_paid))
        if changes.get('stay_start_date') is not None:
            stay.stay_start_date = changes['stay_start_date']
        if changes.get('stay_end_date') is not None:
            stay.stay_end_date = changes['stay_end_date']
        _check_stay_period(stay.stay_start_date, stay.stay_end_date)

    db.commit()
    logger.info('hostel_student_updated student_id=%s', student_id)
    return hostel_student_detail(db, student_id)


def renew_hostel_stay(
    db: Session,
    student_id: int,
    data: dict,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    row = get_hostel_student(db, student_id)
    room_number = _clean_text(data.get('room_number'))
    if not room_number:
        raise ValueError('room_number is required')
    _check_stay_period(data['stay_start_date'], data['stay_end_date'])
    row.room_number = room_number
    cash = float(data.get('cash_paid') or 0)
    online = float(data.get('online_paid') or 0)
    # Security money is collected once at admission, so renewals start at zero.
    stay = HostelStudentHistory(
        stay_start_date=data['stay_start_date'],
        stay_end_date=data['stay_end_date'],
        total_fee=round_money(data['total_fee']),
        cash_paid=round_money(cash),
        online_paid=round_money(online),
        due_amount=round_money(due_amount(data['total_fee'], cash, online)),
        security_money_cash=0.0,
        security_money_online=0.0,
        room_number=room_number,
        remark=_clean_text(data.get('remark')),
        created_at=data.get('created_at') or time_provider.naive_now(),
    )
    row.history.append(stay)
    db.commit()
    db.refresh(stay)
    logger.info('hostel_stay_renewed student_id=%s history_id=%s', student_id, stay.id)
    return {'history': serialize_stay(stay), 'message': 'Student renewed successfully'}


def list_expired_hostel_students(
    db: Session,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    today = time_provider.today()
    expired = []
    for row in _student_query(db).order_by(HostelStudent.name.asc()).all():
        stay = latest_stay(row)
        if stay is None or membership_status(stay.stay_end_date, today) != 'expired':
            continue
        expired.append(
            {
                'id': row.id,
                'name': row.name,
                'phone_number': row.phone_number,
                'aadhar_number': row.aadhar_number,
                'room_number': row.room_number,
                'branch_name': row.branch.name if row.branch else None,
                'latest_stay_end_date': stay.stay_end_date.isoformat(),
            }
        )
    return expired


def delete_hostel_student(db: Session, student_id: int) -> None:
    row = get_hostel_student(db, student_id)
    db.delete(row)
    db.commit()
    logger.info('hostel_student_deleted student_id=%s', student_id)

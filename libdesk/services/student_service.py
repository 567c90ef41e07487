from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.errors import ConflictError, RecordNotFoundError
from libdesk.domain.membership import (
    days_remaining,
    display_status,
    is_expiring_soon,
    membership_status,
    validate_membership_period,
)
from libdesk.domain.reconciliation import amount_paid, display_due, due_amount, round_money
from libdesk.metrics import timed_service
from libdesk.models import (
    AdvancePaymentUsage,
    Branch,
    MembershipHistory,
    PreviousDuePayment,
    SeatAssignment,
    Student,
)
from libdesk.services import seat_service, settings_service


logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    'name',
    'email',
    'phone',
    'address',
    'father_name',
    'aadhar_number',
    'profile_image_url',
    'remark',
)
_HISTORY_COPY_FIELDS = (
    'name',
    'email',
    'phone',
    'address',
    'registration_number',
    'father_name',
    'aadhar_number',
    'membership_start',
    'membership_end',
    'total_fee',
    'cash',
    'online',
    'amount_paid',
    'due_amount',
    'security_money',
    'branch_id',
)


def _student_query(db: Session):
    return db.query(Student).options(
        joinedload(Student.branch),
        joinedload(Student.assignments).joinedload(SeatAssignment.seat),
        joinedload(Student.assignments).joinedload(SeatAssignment.shift),
    )


def _latest_assignment(student: Student) -> SeatAssignment | None:
    return student.assignments[-1] if student.assignments else None


def serialize_student(student: Student, today: date) -> dict:
    latest = _latest_assignment(student)
    return {
        'id': student.id,
        'name': student.name,
        'email': student.email,
        'phone': student.phone,
        'address': student.address,
        'registration_number': student.registration_number,
        'father_name': student.father_name,
        'aadhar_number': student.aadhar_number,
        'profile_image_url': student.profile_image_url,
        'branch_id': student.branch_id,
        'branch_name': student.branch.name if student.branch else None,
        'membership_start': student.membership_start.isoformat(),
        'membership_end': student.membership_end.isoformat(),
        'total_fee': round_money(student.total_fee),
        'cash': round_money(student.cash),
        'online': round_money(student.online),
        'amount_paid': round_money(student.amount_paid),
        'due_amount': round_money(display_due(student.total_fee, student.cash, student.online)),
        'security_money': round_money(student.security_money),
        'remark': student.remark,
        'is_active': bool(student.is_active),
        'status': membership_status(student.membership_end, today),
        'display_status': display_status(bool(student.is_active), student.membership_end, today),
        'seat_id': latest.seat_id if latest else None,
        'seat_number': latest.seat.seat_number if latest and latest.seat else None,
        'shift_id': latest.shift_id if latest else None,
        'shift_title': latest.shift.title if latest and latest.shift else None,
        'created_at': student.created_at.isoformat() if student.created_at else None,
    }


def _apply_search(query, search: str):
    needle = (search or '').strip()
    if not needle:
        return query
    pattern = f'%{needle}%'
    return query.filter(
        or_(
            Student.name.ilike(pattern),
            Student.phone.ilike(pattern),
            Student.registration_number.ilike(pattern),
            Student.father_name.ilike(pattern),
        )
    )


@timed_service('students_list')
def list_students(
    db: Session,
    *,
    search: str = '',
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    query = _student_query(db)
    query = _apply_search(query, search)
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    rows = query.order_by(Student.name.asc()).all()
    today = time_provider.today()
    return [serialize_student(row, today) for row in rows]


def list_inactive_students(
    db: Session,
    *,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    query = _student_query(db).filter(Student.is_active.is_(False))
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    today = time_provider.today()
    return [serialize_student(row, today) for row in query.order_by(Student.name.asc()).all()]


def list_active_students(
    db: Session,
    *,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    today = time_provider.today()
    query = _student_query(db).filter(Student.is_active.is_(True), Student.membership_end >= today)
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    return [serialize_student(row, today) for row in query.order_by(Student.name.asc()).all()]


def list_expired_students(
    db: Session,
    *,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    today = time_provider.today()
    query = _student_query(db).filter(Student.is_active.is_(True), Student.membership_end < today)
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    rows = query.order_by(Student.membership_end.desc(), Student.name.asc()).all()
    return [serialize_student(row, today) for row in rows]


def list_expiring_soon(
    db: Session,
    *,
    days: int | None = None,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> list[dict]:
    today = time_provider.today()
    window = settings_service.get_days_before_expiration(db) if days is None else int(days)
    query = _student_query(db).filter(Student.is_active.is_(True), Student.membership_end >= today)
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    result = []
    for row in query.order_by(Student.membership_end.asc(), Student.name.asc()).all():
        if not is_expiring_soon(row.membership_end, today, window):
            continue
        item = serialize_student(row, today)
        item['days_remaining'] = days_remaining(row.membership_end, today)
        result.append(item)
    return result


def get_student(db: Session, student_id: int) -> Student:
    row = _student_query(db).filter(Student.id == student_id).first()
    if not row:
        raise RecordNotFoundError('Student not found')
    return row


def get_student_detail(
    db: Session,
    student_id: int,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    student = get_student(db, student_id)
    payload = serialize_student(student, time_provider.today())
    payload['assignments'] = [
        {
            'seat_id': row.seat_id,
            'seat_number': row.seat.seat_number if row.seat else None,
            'shift_id': row.shift_id,
            'shift_title': row.shift.title if row.shift else None,
        }
        for row in student.assignments
    ]
    latest_history = (
        db.query(MembershipHistory)
        .filter(MembershipHistory.student_id == student.id)
        .order_by(MembershipHistory.id.desc())
        .first()
    )
    last_payment = None
    if latest_history:
        last_payment = latest_history.payment_date or latest_history.changed_at.date()
    payload['last_payment_date'] = last_payment.isoformat() if last_payment else None
    return payload


def list_students_for_shift(
    db: Session,
    shift_id: int,
    *,
    page: int = 1,
    limit: int = 10,
    search: str = '',
    status: str = 'all',
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if page < 1 or limit < 1:
        raise ValueError('page and limit must be positive')
    today = time_provider.today()
    query = (
        db.query(Student)
        .join(SeatAssignment, SeatAssignment.student_id == Student.id)
        .filter(SeatAssignment.shift_id == shift_id)
    )
    needle = (search or '').strip()
    if needle:
        query = query.filter(or_(Student.name.ilike(f'%{needle}%'), Student.phone.ilike(f'%{needle}%')))
    if status == 'active':
        query = query.filter(Student.membership_end >= today)
    elif status == 'expired':
        query = query.filter(Student.membership_end < today)
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)

    total_count = query.distinct().count()
    rows = query.distinct().order_by(Student.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        'students': [
            {
                'id': row.id,
                'name': row.name,
                'email': row.email,
                'phone': row.phone,
                'registration_number': row.registration_number,
                'father_name': row.father_name,
                'aadhar_number': row.aadhar_number,
                'membership_end': row.membership_end.isoformat(),
                'status': membership_status(row.membership_end, today),
            }
            for row in rows
        ],
        'total_count': total_count,
        'page': page,
        'limit': limit,
    }


def next_registration_number(db: Session) -> str:
    start = settings_service.get_registration_number_start(db)
    highest = 0
    for (value,) in db.query(Student.registration_number).filter(Student.registration_number.isnot(None)).all():
        text = (value or '').strip()
        if text.isdigit():
            highest = max(highest, int(text))
    return str(max(highest + 1, start))


def _validate_money(data: dict) -> None:
    for key in ('total_fee', 'cash', 'online', 'security_money'):
        if float(data.get(key) or 0) < 0:
            raise ValueError(f'{key} cannot be negative')
    if round_money(amount_paid(data.get('cash'), data.get('online'))) > round_money(data.get('total_fee')):
        raise ValueError('Amount paid cannot exceed total fee')


def _validate_branch(db: Session, branch_id: int | None) -> None:
    if branch_id is None:
        raise ValueError('branch_id is required')
    if not db.query(Branch.id).filter(Branch.id == branch_id).first():
        raise RecordNotFoundError('Branch not found')


def _ensure_unique_registration(db: Session, registration_number: str, *, student_id: int | None = None) -> None:
    query = db.query(Student.id).filter(Student.registration_number == registration_number)
    if student_id is not None:
        query = query.filter(Student.id != student_id)
    if query.first():
        raise ConflictError('Registration number already exists')


def _apply_fees(student: Student, data: dict) -> None:
    student.total_fee = round_money(data.get('total_fee'))
    student.cash = round_money(data.get('cash'))
    student.online = round_money(data.get('online'))
    student.amount_paid = round_money(amount_paid(student.cash, student.online))
    student.due_amount = round_money(due_amount(student.total_fee, student.cash, student.online))
    student.security_money = round_money(data.get('security_money'))


def _sync_history(history: MembershipHistory, student: Student, *, today: date, seat_id, shift_id) -> None:
    for field_name in _HISTORY_COPY_FIELDS:
        setattr(history, field_name, getattr(student, field_name))
    history.status = membership_status(student.membership_end, today)
    history.original_due = student.due_amount
    history.remark = student.remark or ''
    history.seat_id = seat_id
    history.shift_id = shift_id


def _append_history(
    db: Session,
    student: Student,
    *,
    today: date,
    changed_at: datetime,
    payment_date: date | None,
    seat_id: int | None,
    shift_ids: list[int],
) -> MembershipHistory:
    history = MembershipHistory(student_id=student.id, changed_at=changed_at, payment_date=payment_date)
    _sync_history(history, student, today=today, seat_id=seat_id, shift_id=shift_ids[0] if shift_ids else None)
    db.add(history)
    db.flush()
    return history


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Seat already assigned for this shift') from exc


def create_student(
    db: Session,
    data: dict,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    if not (data.get('name') or '').strip():
        raise ValueError('Name is required')
    _validate_branch(db, data.get('branch_id'))
    validate_membership_period(data['membership_start'], data['membership_end'])
    _validate_money(data)
    seat_id = data.get('seat_id')
    shift_ids = list(data.get('shift_ids') or [])
    seat_service.ensure_bookable(db, seat_id=seat_id, shift_ids=shift_ids)

    registration_number = (data.get('registration_number') or '').strip() or next_registration_number(db)
    _ensure_unique_registration(db, registration_number)

    created_at = data.get('created_at') or time_provider.naive_now()
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(time_provider.now().tzinfo).replace(tzinfo=None)

    student = Student(
        branch_id=data['branch_id'],
        registration_number=registration_number,
        membership_start=data['membership_start'],
        membership_end=data['membership_end'],
        is_active=True,
        created_at=created_at,
    )
    for field_name in _PROFILE_FIELDS:
        if field_name in data:
            setattr(student, field_name, data.get(field_name))
    student.name = data['name'].strip()
    _apply_fees(student, data)
    db.add(student)
    db.flush()

    seat_service.replace_assignments(db, student, seat_id=seat_id, shift_ids=shift_ids)
    _append_history(
        db,
        student,
        today=time_provider.today(),
        changed_at=created_at,
        payment_date=created_at.date(),
        seat_id=seat_id,
        shift_ids=shift_ids,
    )
    _commit(db)
    logger.info('student_created student_id=%s branch_id=%s', student.id, student.branch_id)
    return get_student_detail(db, student.id, time_provider=time_provider)


def update_student(
    db: Session,
    student_id: int,
    data: dict,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    student = get_student(db, student_id)
    if not (data.get('name') or '').strip():
        raise ValueError('Name is required')
    _validate_branch(db, data.get('branch_id'))
    validate_membership_period(data['membership_start'], data['membership_end'])
    _validate_money(data)
    seat_id = data.get('seat_id')
    shift_ids = list(data.get('shift_ids') or [])
    seat_service.ensure_bookable(db, seat_id=seat_id, shift_ids=shift_ids, student_id=student.id)

    registration_number = (data.get('registration_number') or '').strip()
    if registration_number:
        _ensure_unique_registration(db, registration_number, student_id=student.id)
        student.registration_number = registration_number

    for field_name in _PROFILE_FIELDS:
        if field_name in data:
            setattr(student, field_name, data.get(field_name))
    student.name = data['name'].strip()
    student.branch_id = data['branch_id']
    student.membership_start = data['membership_start']
    student.membership_end = data['membership_end']
    _apply_fees(student, data)

    if student.is_active:
        seat_service.replace_assignments(db, student, seat_id=seat_id, shift_ids=shift_ids)

    latest_history = (
        db.query(MembershipHistory)
        .filter(MembershipHistory.student_id == student.id)
        .order_by(MembershipHistory.id.desc())
        .first()
    )
    if latest_history:
        _sync_history(
            latest_history,
            student,
            today=time_provider.today(),
            seat_id=seat_id,
            shift_id=shift_ids[0] if shift_ids else None,
        )
    _commit(db)
    logger.info('student_updated student_id=%s', student.id)
    return get_student_detail(db, student.id, time_provider=time_provider)


def set_student_status(
    db: Session,
    student_id: int,
    is_active: bool,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    student = get_student(db, student_id)
    student.is_active = bool(is_active)
    if not student.is_active:
        # Deactivated students release their seats.
        db.query(SeatAssignment).filter(SeatAssignment.student_id == student.id).delete(synchronize_session=False)
    db.commit()
    db.expire(student)
    logger.info('student_status_changed student_id=%s is_active=%s', student.id, student.is_active)
    return serialize_student(get_student(db, student_id), time_provider.today())


def renew_student(
    db: Session,
    student_id: int,
    data: dict,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    student = get_student(db, student_id)
    _validate_branch(db, data.get('branch_id'))
    validate_membership_period(data['membership_start'], data['membership_end'])
    _validate_money(data)
    seat_id = data.get('seat_id')
    shift_ids = list(data.get('shift_ids') or [])
    seat_service.ensure_bookable(db, seat_id=seat_id, shift_ids=shift_ids, student_id=student.id)

    for field_name in _PROFILE_FIELDS:
        if data.get(field_name) is not None:
            setattr(student, field_name, data.get(field_name))
    student.branch_id = data['branch_id']
    student.membership_start = data['membership_start']
    student.membership_end = data['membership_end']
    student.is_active = True
    _apply_fees(student, data)
    seat_service.replace_assignments(db, student, seat_id=seat_id, shift_ids=shift_ids)

    history = _append_history(
        db,
        student,
        today=time_provider.today(),
        changed_at=time_provider.naive_now(),
        payment_date=data.get('payment_date'),
        seat_id=seat_id,
        shift_ids=shift_ids,
    )
    _commit(db)
    logger.info('student_renewed student_id=%s history_id=%s', student.id, history.id)
    payload = get_student_detail(db, student.id, time_provider=time_provider)
    payload['history_id'] = history.id
    return payload


def delete_student(db: Session, student_id: int) -> None:
    student = get_student(db, student_id)
    db.query(AdvancePaymentUsage).filter(AdvancePaymentUsage.student_id == student.id).delete(synchronize_session=False)
    # Collection records outlive the student.
    db.query(MembershipHistory).filter(MembershipHistory.student_id == student.id).update(
        {MembershipHistory.student_id: None},
        synchronize_session=False,
    )
    db.query(PreviousDuePayment).filter(PreviousDuePayment.student_id == student.id).update(
        {PreviousDuePayment.student_id: None},
        synchronize_session=False,
    )
    db.delete(student)
    db.commit()
    logger.info('student_deleted student_id=%s', student_id)

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, joinedload

from libdesk.domain.availability import (
    SeatView,
    ShiftState,
    ShiftView,
    available_seats_for_shift,
    available_shifts_for_seat,
    find_booking_conflicts,
    shift_options_for_seat,
)
from libdesk.domain.errors import ConflictError, RecordNotFoundError
from libdesk.models import Schedule, Seat, SeatAssignment, Student


logger = logging.getLogger(__name__)


def _shift_views(db: Session) -> list[ShiftView]:
    rows = db.query(Schedule).order_by(Schedule.event_date.asc(), Schedule.time.asc(), Schedule.id.asc()).all()
    return [
        ShiftView(
            id=row.id,
            title=row.title,
            time=row.time or '',
            event_date=row.event_date.isoformat() if row.event_date else None,
        )
        for row in rows
    ]


def load_seat_views(db: Session, *, branch_id: int | None = None) -> list[SeatView]:
    """Snapshot every seat with the per-shift state of its active bookings."""
    query = db.query(Seat)
    if branch_id is not None:
        query = query.filter(Seat.branch_id == branch_id)
    seats = query.order_by(Seat.seat_number.asc()).all()
    if not seats:
        return []

    seat_ids = [seat.id for seat in seats]
    assignments = (
        db.query(SeatAssignment)
        .options(joinedload(SeatAssignment.student), joinedload(SeatAssignment.shift))
        .join(Student, Student.id == SeatAssignment.student_id)
        .filter(SeatAssignment.seat_id.in_(seat_ids), Student.is_active.is_(True))
        .all()
    )
    by_seat: dict[int, list[ShiftState]] = {}
    for row in assignments:
        by_seat.setdefault(row.seat_id, []).append(
            ShiftState(
                shift_id=row.shift_id,
                shift_title=row.shift.title if row.shift else '',
                is_assigned=True,
                student_id=row.student_id,
                student_name=row.student.name if row.student else None,
            )
        )
    return [
        SeatView(
            id=seat.id,
            seat_number=seat.seat_number,
            branch_id=seat.branch_id,
            shifts=tuple(by_seat.get(seat.id, ())),
        )
        for seat in seats
    ]


def _seat_payload(seat: SeatView, shifts: list[ShiftView]) -> dict:
    shift_rows = []
    for shift in shifts:
        state = seat.state_for(shift.id)
        shift_rows.append(
            {
                'shift_id': shift.id,
                'shift_title': shift.title,
                'is_assigned': state is not None,
                'student_name': state.student_name if state else None,
            }
        )
    return {
        'id': seat.id,
        'seat_number': seat.seat_number,
        'branch_id': seat.branch_id,
        'shifts': shift_rows,
    }


def list_seats(db: Session, *, shift_id: int | None = None, branch_id: int | None = None) -> list[dict]:
    seats = load_seat_views(db, branch_id=branch_id)
    shifts = _shift_views(db)
    if shift_id is not None:
        shifts = [shift for shift in shifts if shift.id == shift_id]
    return [_seat_payload(seat, shifts) for seat in seats]


def get_seat(db: Session, seat_id: int) -> Seat:
    row = db.query(Seat).filter(Seat.id == seat_id).first()
    if not row:
        raise RecordNotFoundError('Seat not found')
    return row


def create_seats(db: Session, *, seat_numbers: str, branch_id: int | None = None) -> list[Seat]:
    numbers = []
    for part in (seat_numbers or '').split(','):
        clean = part.strip()
        if clean and clean not in numbers:
            numbers.append(clean)
    if not numbers:
        raise ValueError('seat_numbers is required')

    existing = {
        row.seat_number
        for row in db.query(Seat).filter(Seat.branch_id == branch_id, Seat.seat_number.in_(numbers)).all()
    }
    if existing:
        raise ConflictError(f'Seat numbers already exist: {", ".join(sorted(existing))}')

    rows = [Seat(seat_number=number, branch_id=branch_id) for number in numbers]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    logger.info('seats_created count=%s branch_id=%s', len(rows), branch_id)
    return rows


def delete_seat(db: Session, seat_id: int) -> None:
    seat = get_seat(db, seat_id)
    held = (
        db.query(SeatAssignment.id)
        .join(Student, Student.id == SeatAssignment.student_id)
        .filter(SeatAssignment.seat_id == seat.id, Student.is_active.is_(True))
        .first()
    )
    if held:
        raise ConflictError('Seat is assigned to an active student')
    db.query(SeatAssignment).filter(SeatAssignment.seat_id == seat.id).delete(synchronize_session=False)
    db.delete(seat)
    db.commit()
    logger.info('seat_deleted seat_id=%s', seat_id)


def seat_assignments(db: Session, seat_id: int) -> list[dict]:
    get_seat(db, seat_id)
    rows = (
        db.query(SeatAssignment)
        .options(joinedload(SeatAssignment.student), joinedload(SeatAssignment.shift))
        .filter(SeatAssignment.seat_id == seat_id)
        .order_by(SeatAssignment.id.asc())
        .all()
    )
    return [
        {
            'id': row.id,
            'shift_id': row.shift_id,
            'shift_title': row.shift.title if row.shift else None,
            'student_id': row.student_id,
            'student_name': row.student.name if row.student else None,
            'is_active': bool(row.student and row.student.is_active),
        }
        for row in rows
    ]


def available_shifts(db: Session, seat_id: int | None, *, student_id: int | None = None) -> list[dict]:
    shifts = _shift_views(db)
    seats = load_seat_views(db) if seat_id is not None else []
    if seat_id is not None:
        get_seat(db, seat_id)
    free = available_shifts_for_seat(seat_id, seats, shifts, editing_student_id=student_id)
    return [{'id': shift.id, 'title': shift.title, 'time': shift.time, 'event_date': shift.event_date} for shift in free]


def shift_options(db: Session, seat_id: int | None, *, student_id: int | None = None) -> list[dict]:
    shifts = _shift_views(db)
    seats = load_seat_views(db) if seat_id is not None else []
    if seat_id is not None:
        get_seat(db, seat_id)
    options = shift_options_for_seat(seat_id, seats, shifts, editing_student_id=student_id)
    return [{'id': option.id, 'label': option.label, 'disabled': option.disabled} for option in options]


def available_seats(
    db: Session,
    *,
    shift_id: int,
    student_id: int | None = None,
    branch_id: int | None = None,
) -> list[dict]:
    seats = available_seats_for_shift(
        shift_id,
        load_seat_views(db, branch_id=branch_id),
        editing_student_id=student_id,
    )
    return [{'id': seat.id, 'seat_number': seat.seat_number, 'branch_id': seat.branch_id} for seat in seats]


def ensure_bookable(
    db: Session,
    *,
    seat_id: int | None,
    shift_ids: list[int],
    student_id: int | None = None,
) -> None:
    """Raise when the seat or shifts are unknown or any pair is held by another active student."""
    if seat_id is not None:
        get_seat(db, seat_id)
    if shift_ids:
        known = {row.id for row in db.query(Schedule.id).filter(Schedule.id.in_(shift_ids)).all()}
        missing = [shift_id for shift_id in shift_ids if shift_id not in known]
        if missing:
            raise RecordNotFoundError(f'Shift not found: {missing[0]}')
    if seat_id is None:
        return
    conflicts = find_booking_conflicts(seat_id, shift_ids, load_seat_views(db), editing_student_id=student_id)
    if conflicts:
        raise ConflictError(f'Seat already assigned for shift {conflicts[0]}')


def replace_assignments(db: Session, student: Student, *, seat_id: int | None, shift_ids: list[int]) -> None:
    """Swap the student's bookings without committing; the caller owns the transaction."""
    db.query(SeatAssignment).filter(SeatAssignment.student_id == student.id).delete(synchronize_session=False)
    db.flush()
    for shift_id in dict.fromkeys(shift_ids):
        db.add(SeatAssignment(seat_id=seat_id, shift_id=shift_id, student_id=student.id))
    db.flush()
    db.expire(student, ['assignments'])

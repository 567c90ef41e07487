from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session, joinedload

from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.reconciliation import (
    CollectionEntry,
    apply_due_payment,
    parse_month,
    reconcile,
    round_money,
)
from libdesk.metrics import timed_service
from libdesk.models import HostelStudent, HostelStudentHistory


logger = logging.getLogger(__name__)


def _month_bounds(month: str) -> tuple[datetime, datetime]:
    year, month_num = parse_month(month)
    start = datetime(year, month_num, 1)
    end = datetime(year + 1, 1, 1) if month_num == 12 else datetime(year, month_num + 1, 1)
    return start, end


def _entry(row: HostelStudentHistory) -> CollectionEntry:
    student = row.student
    return CollectionEntry(
        history_id=row.id,
        student_id=row.student_id,
        name=student.name if student else '',
        total_fee=float(row.total_fee or 0),
        cash=float(row.cash_paid or 0),
        online=float(row.online_paid or 0),
        branch_id=student.branch_id if student else None,
        branch_name=student.branch.name if student and student.branch else None,
        security_money=float(row.security_money_cash or 0) + float(row.security_money_online or 0),
        remark=row.remark or '',
        created_at=row.created_at,
    )


def serialize_hostel_collection(row: HostelStudentHistory) -> dict:
    student = row.student
    return {
        'history_id': row.id,
        'student_id': row.student_id,
        'student_name': student.name if student else None,
        'branch_id': student.branch_id if student else None,
        'branch_name': student.branch.name if student and student.branch else None,
        'phone_number': student.phone_number if student else None,
        'registration_number': student.registration_number if student else None,
        'current_room_number': student.room_number if student else None,
        'room_number': row.room_number,
        'stay_start_date': row.stay_start_date.isoformat(),
        'stay_end_date': row.stay_end_date.isoformat(),
        'total_fee': round_money(row.total_fee),
        'cash_paid': round_money(row.cash_paid),
        'online_paid': round_money(row.online_paid),
        'due_amount': round_money(row.due_amount),
        'security_money_cash': round_money(row.security_money_cash),
        'security_money_online': round_money(row.security_money_online),
        'remark': row.remark,
        'created_at': row.created_at.isoformat() if row.created_at else None,
    }


def hostel_history_query(
    db: Session,
    *,
    month: str | None = None,
    day: date | None = None,
    branch_id: int | None = None,
):
    query = db.query(HostelStudentHistory).options(
        joinedload(HostelStudentHistory.student).joinedload(HostelStudent.branch),
    )
    if month:
        start, end = _month_bounds(month)
        query = query.filter(HostelStudentHistory.created_at >= start, HostelStudentHistory.created_at < end)
    if day is not None:
        start = datetime(day.year, day.month, day.day)
        query = query.filter(
            HostelStudentHistory.created_at >= start,
            HostelStudentHistory.created_at < start + timedelta(days=1),
        )
    if branch_id is not None:
        query = query.join(HostelStudent, HostelStudent.id == HostelStudentHistory.student_id)
        query = query.filter(HostelStudent.branch_id == branch_id)
    return query


def load_hostel_entries(
    db: Session,
    *,
    month: str | None = None,
    day: date | None = None,
    branch_id: int | None = None,
) -> list[CollectionEntry]:
    return [_entry(row) for row in hostel_history_query(db, month=month, day=day, branch_id=branch_id).all()]


@timed_service('hostel_collections_list')
def list_hostel_collections(
    db: Session,
    *,
    month: str | None = None,
    branch_id: int | None = None,
    search: str = '',
) -> dict:
    rows = (
        hostel_history_query(db, month=month, branch_id=branch_id)
        .order_by(HostelStudentHistory.created_at.desc(), HostelStudentHistory.id.desc())
        .all()
    )
    needle = (search or '').strip().lower()
    if needle:
        rows = [row for row in rows if row.student and needle in row.student.name.lower()]
    totals = reconcile([_entry(row) for row in rows], None)
    return {
        'collections': [serialize_hostel_collection(row) for row in rows],
        'totals': {
            'total_collected': totals.total_collected,
            'total_due': totals.total_due,
            'total_cash': totals.total_cash,
            'total_online': totals.total_online,
            'record_count': totals.record_count,
        },
    }


def _get_stay(db: Session, history_id: int) -> HostelStudentHistory:
    row = (
        db.query(HostelStudentHistory)
        .options(joinedload(HostelStudentHistory.student).joinedload(HostelStudent.branch))
        .filter(HostelStudentHistory.id == history_id)
        .first()
    )
    if not row:
        raise RecordNotFoundError('Hostel collection record not found')
    return row


def pay_hostel_due(db: Session, history_id: int, *, amount: float, method: str) -> dict:
    row = _get_stay(db, history_id)
    result = apply_due_payment(
        total_fee=float(row.total_fee or 0),
        cash=float(row.cash_paid or 0),
        online=float(row.online_paid or 0),
        amount=amount,
        method=method,
    )
    row.cash_paid = result.cash
    row.online_paid = result.online
    row.due_amount = result.due_amount
    db.commit()
    db.refresh(row)
    logger.info(
        'hostel_due_paid history_id=%s amount=%.2f method=%s state=%s',
        row.id,
        round_money(amount),
        method,
        result.state,
    )
    payload = serialize_hostel_collection(row)
    payload['state'] = result.state
    return payload


def delete_hostel_collection(db: Session, history_id: int) -> None:
    row = _get_stay(db, history_id)
    student_id = row.student_id
    db.delete(row)
    db.flush()
    remaining = db.query(HostelStudentHistory.id).filter(HostelStudentHistory.student_id == student_id).first()
    if not remaining:
        # A resident with no stay left no longer holds a room.
        db.query(HostelStudent).filter(HostelStudent.id == student_id).update(
            {HostelStudent.room_number: None},
            synchronize_session=False,
        )
    db.commit()
    logger.info('hostel_collection_deleted history_id=%s student_id=%s', history_id, student_id)

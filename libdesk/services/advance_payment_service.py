"""Advance payments: credit a student pays ahead of a renewal.

Each usage is logged against the advance and optionally linked to the
collection record it was applied to. ``used_amount`` never exceeds
``amount``; an advance whose balance reaches zero becomes ``fully_used``.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from sqlalchemy.orm import Session, joinedload

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.reconciliation import round_money, validate_payment_method
from libdesk.models import (
    AdvancePayment,
    AdvancePaymentStatus,
    AdvancePaymentUsage,
    MembershipHistory,
    Student,
)


logger = logging.getLogger(__name__)


def serialize_advance(row: AdvancePayment) -> dict:
    return {
        'id': row.id,
        'student_id': row.student_id,
        'student_name': row.student.name if row.student else None,
        'branch_id': row.branch_id,
        'branch_name': row.branch.name if row.branch else None,
        'amount': round_money(row.amount),
        'used_amount': round_money(row.used_amount),
        'remaining_amount': round_money(row.remaining_amount),
        'payment_method': row.payment_method,
        'payment_date': row.payment_date.isoformat() if row.payment_date else None,
        'status': row.status,
        'notes': row.notes,
        'created_at': row.created_at.isoformat() if row.created_at else None,
    }


def _query(db: Session):
    return db.query(AdvancePayment).options(joinedload(AdvancePayment.student), joinedload(AdvancePayment.branch))


def list_advance_payments(
    db: Session,
    *,
    branch_id: int | None = None,
    student_id: int | None = None,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    query = _query(db)
    if branch_id is not None:
        query = query.filter(AdvancePayment.branch_id == branch_id)
    if student_id is not None:
        query = query.filter(AdvancePayment.student_id == student_id)
    if status:
        query = query.filter(AdvancePayment.status == status)
    if start_date is not None:
        query = query.filter(AdvancePayment.payment_date >= start_date)
    if end_date is not None:
        query = query.filter(AdvancePayment.payment_date <= end_date)
    rows = query.order_by(AdvancePayment.payment_date.desc(), AdvancePayment.id.desc()).all()
    return [serialize_advance(row) for row in rows]


def student_advance_summary(db: Session, student_id: int) -> dict:
    rows = (
        _query(db)
        .filter(
            AdvancePayment.student_id == student_id,
            AdvancePayment.status == AdvancePaymentStatus.ACTIVE.value,
        )
        .order_by(AdvancePayment.payment_date.asc(), AdvancePayment.id.asc())
        .all()
    )
    return {
        'advance_payments': [serialize_advance(row) for row in rows],
        'total_available': round_money(sum(row.remaining_amount for row in rows)),
    }


def get_advance_payment(db: Session, advance_id: int) -> AdvancePayment:
    row = _query(db).filter(AdvancePayment.id == advance_id).first()
    if not row:
        raise RecordNotFoundError('Advance payment not found')
    return row


def _positive_amount(value) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError('Amount must be a positive number') from exc
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError('Amount must be a positive number')
    return amount


def create_advance_payment(
    db: Session,
    *,
    student_id: int,
    amount: float,
    payment_method: str,
    payment_date: date | None = None,
    notes: str | None = None,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise RecordNotFoundError('Student not found')
    value = _positive_amount(amount)
    try:
        validate_payment_method(payment_method)
    except ValueError as exc:
        raise ValueError('Payment method must be cash or online') from exc

    row = AdvancePayment(
        student_id=student.id,
        branch_id=branch_id if branch_id is not None else student.branch_id,
        amount=round_money(value),
        payment_method=payment_method,
        payment_date=payment_date or time_provider.today(),
        used_amount=0,
        status=AdvancePaymentStatus.ACTIVE.value,
        notes=notes,
    )
    db.add(row)
    db.commit()
    logger.info('advance_created advance_id=%s student_id=%s amount=%.2f', row.id, student.id, row.amount)
    return serialize_advance(get_advance_payment(db, row.id))


def update_advance_payment(db: Session, advance_id: int, **changes) -> dict:
    row = get_advance_payment(db, advance_id)
    if changes.get('amount') is not None:
        value = _positive_amount(changes['amount'])
        if round_money(value) < round_money(row.used_amount):
            raise ValueError('New amount cannot be less than already used amount')
        row.amount = round_money(value)
    if changes.get('payment_method') is not None:
        try:
            validate_payment_method(changes['payment_method'])
        except ValueError as exc:
            raise ValueError('Payment method must be cash or online') from exc
        row.payment_method = changes['payment_method']
    if changes.get('payment_date') is not None:
        row.payment_date = changes['payment_date']
    if changes.get('notes') is not None:
        row.notes = changes['notes']
    if changes.get('status') is not None:
        row.status = changes['status']
    elif row.status != AdvancePaymentStatus.CANCELLED.value:
        row.status = (
            AdvancePaymentStatus.FULLY_USED.value if row.remaining_amount <= 0 else AdvancePaymentStatus.ACTIVE.value
        )
    db.commit()
    return serialize_advance(get_advance_payment(db, advance_id))


def delete_advance_payment(db: Session, advance_id: int) -> None:
    row = get_advance_payment(db, advance_id)
    # Usage rows go with the advance through the relationship cascade.
    db.delete(row)
    db.commit()
    logger.info('advance_deleted advance_id=%s', advance_id)


def use_advance_payment(
    db: Session,
    advance_id: int,
    *,
    amount_to_use: float,
    membership_history_id: int | None = None,
    notes: str | None = None,
) -> dict:
    row = (
        _query(db)
        .filter(AdvancePayment.id == advance_id, AdvancePayment.status == AdvancePaymentStatus.ACTIVE.value)
        .first()
    )
    if not row:
        raise RecordNotFoundError('Active advance payment not found')
    try:
        value = _positive_amount(amount_to_use)
    except ValueError as exc:
        raise ValueError('Amount to use must be a positive number') from exc
    remaining = round_money(row.remaining_amount)
    if round_money(value) > remaining:
        raise ValueError(f'Insufficient advance balance. Available: {remaining}')
    if membership_history_id is not None:
        if not db.query(MembershipHistory.id).filter(MembershipHistory.id == membership_history_id).first():
            raise RecordNotFoundError('Collection record not found')

    db.add(
        AdvancePaymentUsage(
            advance_payment_id=row.id,
            student_id=row.student_id,
            membership_history_id=membership_history_id,
            amount_used=round_money(value),
            notes=notes,
        )
    )
    row.used_amount = round_money(float(row.used_amount or 0) + value)
    if row.used_amount >= round_money(row.amount):
        row.status = AdvancePaymentStatus.FULLY_USED.value
    db.commit()
    logger.info('advance_used advance_id=%s amount=%.2f status=%s', row.id, value, row.status)
    return serialize_advance(get_advance_payment(db, advance_id))


def usage_history(db: Session, advance_id: int) -> list[dict]:
    get_advance_payment(db, advance_id)
    rows = (
        db.query(AdvancePaymentUsage)
        .options(joinedload(AdvancePaymentUsage.membership_history))
        .filter(AdvancePaymentUsage.advance_payment_id == advance_id)
        .order_by(AdvancePaymentUsage.usage_date.desc(), AdvancePaymentUsage.id.desc())
        .all()
    )
    return [
        {
            'id': usage.id,
            'advance_payment_id': usage.advance_payment_id,
            'student_id': usage.student_id,
            'membership_history_id': usage.membership_history_id,
            'membership_start': (
                usage.membership_history.membership_start.isoformat() if usage.membership_history else None
            ),
            'membership_end': (
                usage.membership_history.membership_end.isoformat() if usage.membership_history else None
            ),
            'amount_used': round_money(usage.amount_used),
            'usage_type': usage.usage_type,
            'usage_date': usage.usage_date.isoformat() if usage.usage_date else None,
            'notes': usage.notes,
        }
        for usage in rows
    ]

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.reconciliation import (
    CollectionEntry,
    PreviousDueItem,
    apply_due_payment,
    filter_records,
    month_tag,
    parse_day,
    parse_month,
    previous_due_paid_into,
    previous_due_paid_out_of,
    reconcile,
    round_money,
)
from libdesk.metrics import timed_service
from libdesk.models import AdvancePaymentUsage, MembershipHistory, PreviousDuePayment, Student


logger = logging.getLogger(__name__)


def _month_bounds(month: str) -> tuple[datetime, datetime]:
    year, month_num = parse_month(month)
    start = datetime(year, month_num, 1)
    end = datetime(year + 1, 1, 1) if month_num == 12 else datetime(year, month_num + 1, 1)
    return start, end


def _entry(row: MembershipHistory) -> CollectionEntry:
    return CollectionEntry(
        history_id=row.id,
        student_id=row.student_id,
        name=row.name,
        total_fee=float(row.total_fee or 0),
        cash=float(row.cash or 0),
        online=float(row.online or 0),
        branch_id=row.branch_id,
        branch_name=row.branch.name if row.branch else None,
        shift_title=row.shift.title if row.shift else None,
        security_money=float(row.security_money or 0),
        remark=row.remark or '',
        created_at=row.changed_at,
        payment_date=row.payment_date,
    )


def _previous_due_item(row: PreviousDuePayment) -> PreviousDueItem:
    return PreviousDueItem(
        id=row.id,
        history_id=row.history_id,
        student_id=row.student_id,
        student_name=row.student.name if row.student else None,
        branch_id=row.branch_id,
        branch_name=row.branch.name if row.branch else None,
        amount=float(row.amount or 0),
        method=row.method,
        paid_at=row.paid_at,
        month_tag=row.month_tag,
        original_month=row.original_month,
    )


def serialize_entry(entry: CollectionEntry) -> dict:
    return {
        'history_id': entry.history_id,
        'student_id': entry.student_id,
        'name': entry.name,
        'shift_title': entry.shift_title,
        'total_fee': round_money(entry.total_fee),
        'amount_paid': round_money(entry.amount_paid),
        'due_amount': round_money(entry.due_amount),
        'cash': round_money(entry.cash),
        'online': round_money(entry.online),
        'security_money': round_money(entry.security_money),
        'remark': entry.remark,
        'created_at': entry.created_at.isoformat() if entry.created_at else None,
        'payment_date': entry.payment_date.isoformat() if entry.payment_date else None,
        'branch_id': entry.branch_id,
        'branch_name': entry.branch_name,
    }


def _serialize_item(item: PreviousDueItem) -> dict:
    payload = asdict(item)
    payload['amount'] = round_money(item.amount)
    payload['paid_at'] = item.paid_at.isoformat() if item.paid_at else None
    return payload


def load_entries(
    db: Session,
    *,
    month: str | None = None,
    branch_id: int | None = None,
) -> list[CollectionEntry]:
    query = db.query(MembershipHistory).options(
        joinedload(MembershipHistory.branch),
        joinedload(MembershipHistory.shift),
    )
    if month:
        start, end = _month_bounds(month)
        query = query.filter(MembershipHistory.changed_at >= start, MembershipHistory.changed_at < end)
    if branch_id is not None:
        query = query.filter(MembershipHistory.branch_id == branch_id)
    return [_entry(row) for row in query.order_by(MembershipHistory.name.asc(), MembershipHistory.id.asc()).all()]


def load_previous_due_items(db: Session, month: str, *, branch_id: int | None = None) -> list[PreviousDueItem]:
    query = (
        db.query(PreviousDuePayment)
        .options(joinedload(PreviousDuePayment.student), joinedload(PreviousDuePayment.branch))
        .filter(or_(PreviousDuePayment.month_tag == month, PreviousDuePayment.original_month == month))
    )
    if branch_id is not None:
        query = query.filter(PreviousDuePayment.branch_id == branch_id)
    return [_previous_due_item(row) for row in query.order_by(PreviousDuePayment.paid_at.desc()).all()]


@timed_service('collections_list')
def list_collections(
    db: Session,
    *,
    month: str | None = None,
    branch_id: int | None = None,
    day: str | None = None,
    search: str = '',
) -> dict:
    """Collection records for the filters plus totals reconciled across months."""
    if month:
        parse_month(month)
    day_value = parse_day(day) if day else None

    records = filter_records(
        load_entries(db, month=month, branch_id=branch_id),
        month=month,
        day=day_value,
        search=search,
    )
    # A single day is a plain sum; cross-month moves only apply to whole months.
    selected_month = None if day_value else month
    items = load_previous_due_items(db, selected_month, branch_id=branch_id) if selected_month else []
    totals = reconcile(records, selected_month, items)
    return {
        'collections': [serialize_entry(entry) for entry in records],
        'previous_due_paid': {
            **asdict(totals.previous_due_paid),
            'items': [_serialize_item(item) for item in previous_due_paid_into(items, selected_month)] if selected_month else [],
        },
        'previous_due_paid_adjustments': {
            **asdict(totals.previous_due_paid_adjustments),
            'items': [_serialize_item(item) for item in previous_due_paid_out_of(items, selected_month)] if selected_month else [],
        },
        'totals': {
            'total_collected': totals.total_collected,
            'total_due': totals.total_due,
            'total_cash': totals.total_cash,
            'total_online': totals.total_online,
            'record_count': totals.record_count,
        },
    }


def _get_history(db: Session, history_id: int) -> MembershipHistory:
    row = db.query(MembershipHistory).filter(MembershipHistory.id == history_id).first()
    if not row:
        raise RecordNotFoundError('Collection record not found')
    return row


def _latest_history_id(db: Session, student_id: int) -> int | None:
    row = (
        db.query(MembershipHistory.id)
        .filter(MembershipHistory.student_id == student_id)
        .order_by(MembershipHistory.id.desc())
        .first()
    )
    return row[0] if row else None


def pay_due(
    db: Session,
    history_id: int,
    *,
    amount: float,
    method: str,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    history = _get_history(db, history_id)
    result = apply_due_payment(
        total_fee=float(history.total_fee or 0),
        cash=float(history.cash or 0),
        online=float(history.online or 0),
        amount=amount,
        method=method,
        original_due=history.original_due if history.original_due else None,
    )
    history.cash = result.cash
    history.online = result.online
    history.amount_paid = result.amount_paid
    history.due_amount = result.due_amount

    # Only the latest record mirrors the student's current fee state.
    if history.student_id is not None and _latest_history_id(db, history.student_id) == history.id:
        student = db.query(Student).filter(Student.id == history.student_id).first()
        if student:
            student.cash = result.cash
            student.online = result.online
            student.amount_paid = result.amount_paid
            student.due_amount = result.due_amount

    current_month = time_provider.current_month()
    record_month = month_tag(history.changed_at)
    if record_month != current_month:
        db.add(
            PreviousDuePayment(
                history_id=history.id,
                student_id=history.student_id,
                branch_id=history.branch_id,
                amount=round_money(amount),
                method=method,
                paid_at=time_provider.naive_now(),
                month_tag=current_month,
                original_month=record_month,
            )
        )
    db.commit()
    db.refresh(history)
    logger.info(
        'due_paid history_id=%s amount=%.2f method=%s state=%s cross_month=%s',
        history.id,
        round_money(amount),
        method,
        result.state,
        record_month != current_month,
    )
    payload = serialize_entry(_entry(history))
    payload['state'] = result.state
    return payload


def delete_collection(db: Session, history_id: int) -> None:
    history = _get_history(db, history_id)
    student_id = history.student_id
    db.query(PreviousDuePayment).filter(PreviousDuePayment.history_id == history.id).delete(synchronize_session=False)
    db.query(AdvancePaymentUsage).filter(AdvancePaymentUsage.membership_history_id == history.id).update(
        {AdvancePaymentUsage.membership_history_id: None},
        synchronize_session=False,
    )
    db.delete(history)
    db.flush()

    if student_id is not None:
        student = db.query(Student).filter(Student.id == student_id).first()
        latest = (
            db.query(MembershipHistory)
            .filter(MembershipHistory.student_id == student_id)
            .order_by(MembershipHistory.id.desc())
            .first()
        )
        if student and latest:
            student.cash = latest.cash or 0
            student.online = latest.online or 0
            student.amount_paid = latest.amount_paid or 0
            student.due_amount = latest.due_amount or 0
            student.total_fee = latest.total_fee or 0
            student.membership_start = latest.membership_start
            student.membership_end = latest.membership_end
        elif student:
            student.cash = 0
            student.online = 0
            student.amount_paid = 0
            student.due_amount = 0
            student.total_fee = 0
    db.commit()
    logger.info('collection_deleted history_id=%s student_id=%s', history_id, student_id)

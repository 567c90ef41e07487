from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session, joinedload

from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.reconciliation import parse_month, round_money
from libdesk.models import HostelBranch, HostelExpense
from libdesk.services.branch_service import GLOBAL_BRANCH_LABEL
from libdesk.services.expense_service import validate_expense


logger = logging.getLogger(__name__)


def serialize_hostel_expense(row: HostelExpense) -> dict:
    return {
        'id': row.id,
        'title': row.title,
        'amount': round_money(row.amount),
        'cash': round_money(row.cash),
        'online': round_money(row.online),
        'date': row.date.isoformat(),
        'remark': row.remark,
        'branch_id': row.branch_id,
        'branch_name': row.branch.name if row.branch else GLOBAL_BRANCH_LABEL,
    }


def hostel_expenses_query(db: Session, *, branch_id: int | None = None, month: str | None = None, day: date | None = None):
    query = db.query(HostelExpense).options(joinedload(HostelExpense.branch))
    if branch_id is not None:
        query = query.filter(HostelExpense.branch_id == branch_id)
    if month:
        year, month_num = parse_month(month)
        start = date(year, month_num, 1)
        end = date(year + 1, 1, 1) if month_num == 12 else date(year, month_num + 1, 1)
        query = query.filter(HostelExpense.date >= start, HostelExpense.date < end)
    if day is not None:
        query = query.filter(HostelExpense.date == day)
    return query


def list_hostel_expenses(db: Session, *, branch_id: int | None = None, month: str | None = None) -> list[dict]:
    rows = (
        hostel_expenses_query(db, branch_id=branch_id, month=month)
        .order_by(HostelExpense.date.desc(), HostelExpense.id.desc())
        .all()
    )
    return [serialize_hostel_expense(row) for row in rows]


def get_hostel_expense(db: Session, expense_id: int) -> HostelExpense:
    row = db.query(HostelExpense).filter(HostelExpense.id == expense_id).first()
    if not row:
        raise RecordNotFoundError('Expense not found')
    return row


def _apply(db: Session, row: HostelExpense, data: dict) -> None:
    title, cash, online, total = validate_expense(data)
    branch_id = data.get('branch_id')
    if branch_id is not None and not db.query(HostelBranch.id).filter(HostelBranch.id == branch_id).first():
        raise RecordNotFoundError('Hostel branch not found')
    row.title = title
    row.date = data['date']
    row.cash = cash
    row.online = online
    row.amount = total
    row.remark = data.get('remark')
    row.branch_id = branch_id


def create_hostel_expense(db: Session, data: dict) -> dict:
    row = HostelExpense()
    _apply(db, row, data)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('hostel_expense_created expense_id=%s amount=%.2f', row.id, row.amount)
    return serialize_hostel_expense(row)


def update_hostel_expense(db: Session, expense_id: int, data: dict) -> dict:
    row = get_hostel_expense(db, expense_id)
    _apply(db, row, data)
    db.commit()
    db.refresh(row)
    return serialize_hostel_expense(row)


def delete_hostel_expense(db: Session, expense_id: int) -> None:
    row = get_hostel_expense(db, expense_id)
    db.delete(row)
    db.commit()
    logger.info('hostel_expense_deleted expense_id=%s', expense_id)

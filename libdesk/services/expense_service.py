from __future__ import annotations

import logging
import math
from datetime import date

from sqlalchemy.orm import Session, joinedload

from libdesk.domain.errors import RecordNotFoundError
from libdesk.domain.reconciliation import amount_paid, parse_month, round_money
from libdesk.models import Branch, Expense
from libdesk.services.branch_service import branch_label


logger = logging.getLogger(__name__)


def serialize_expense(row: Expense) -> dict:
    return {
        'id': row.id,
        'title': row.title,
        'amount': round_money(row.amount),
        'cash': round_money(row.cash),
        'online': round_money(row.online),
        'date': row.date.isoformat(),
        'remark': row.remark,
        'branch_id': row.branch_id,
        'branch_name': branch_label(row.branch),
    }


def expenses_query(db: Session, *, branch_id: int | None = None, month: str | None = None, day: date | None = None):
    query = db.query(Expense).options(joinedload(Expense.branch))
    if branch_id is not None:
        query = query.filter(Expense.branch_id == branch_id)
    if month:
        year, month_num = parse_month(month)
        start = date(year, month_num, 1)
        end = date(year + 1, 1, 1) if month_num == 12 else date(year, month_num + 1, 1)
        query = query.filter(Expense.date >= start, Expense.date < end)
    if day is not None:
        query = query.filter(Expense.date == day)
    return query


def list_expenses(db: Session, *, branch_id: int | None = None, month: str | None = None) -> list[dict]:
    rows = expenses_query(db, branch_id=branch_id, month=month).order_by(Expense.date.desc(), Expense.id.desc()).all()
    return [serialize_expense(row) for row in rows]


def get_expense(db: Session, expense_id: int) -> Expense:
    row = db.query(Expense).filter(Expense.id == expense_id).first()
    if not row:
        raise RecordNotFoundError('Expense not found')
    return row


def validate_expense(data: dict) -> tuple[str, float, float, float]:
    """Cleaned title with cash, online and total; shared by the library and hostel ledgers."""
    title = (data.get('title') or '').strip()
    if not title or data.get('date') is None:
        raise ValueError('Title and date are required')
    cash = float(data.get('cash') or 0)
    online = float(data.get('online') or 0)
    if not (math.isfinite(cash) and math.isfinite(online)):
        raise ValueError('cash and online must be finite numbers')
    if cash < 0 or online < 0:
        raise ValueError('cash and online cannot be negative')
    total = amount_paid(cash, online)
    if total <= 0:
        raise ValueError('Amount must be greater than zero')
    return title, round_money(cash), round_money(online), round_money(total)


def _apply(db: Session, row: Expense, data: dict) -> None:
    title, cash, online, total = validate_expense(data)
    branch_id = data.get('branch_id')
    if branch_id is not None and not db.query(Branch.id).filter(Branch.id == branch_id).first():
        raise RecordNotFoundError('Branch not found')
    row.title = title
    row.date = data['date']
    row.cash = cash
    row.online = online
    row.amount = total
    row.remark = data.get('remark')
    row.branch_id = branch_id


def create_expense(db: Session, data: dict) -> dict:
    row = Expense()
    _apply(db, row, data)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('expense_created expense_id=%s amount=%.2f', row.id, row.amount)
    return serialize_expense(row)


def update_expense(db: Session, expense_id: int, data: dict) -> dict:
    row = get_expense(db, expense_id)
    _apply(db, row, data)
    db.commit()
    db.refresh(row)
    return serialize_expense(row)


def delete_expense(db: Session, expense_id: int) -> None:
    row = get_expense(db, expense_id)
    db.delete(row)
    db.commit()
    logger.info('expense_deleted expense_id=%s', expense_id)

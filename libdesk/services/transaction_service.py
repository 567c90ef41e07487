from __future__ import annotations

from sqlalchemy.orm import Session

from libdesk.core.time_provider import utc_now
from libdesk.domain.errors import RecordNotFoundError
from libdesk.models import Transaction


_AMOUNT_FIELDS = ('cash_receipt', 'online_receipt', 'cash_expense', 'online_expense')


def list_transactions(db: Session) -> list[Transaction]:
    return db.query(Transaction).order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def get_transaction(db: Session, transaction_id: int) -> Transaction:
    row = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not row:
        raise RecordNotFoundError('Transaction not found')
    return row


def create_transaction(db: Session, *, name: str, **amounts) -> Transaction:
    if not (name or '').strip():
        raise ValueError('Name is required')
    row = Transaction(name=name.strip())
    for field_name in _AMOUNT_FIELDS:
        setattr(row, field_name, float(amounts.get(field_name) or 0))
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_transaction(db: Session, transaction_id: int, **changes) -> Transaction:
    row = get_transaction(db, transaction_id)
    name = changes.get('name')
    if name is not None:
        if not name.strip():
            raise ValueError('Name is required')
        row.name = name.strip()
    for field_name in _AMOUNT_FIELDS:
        if changes.get(field_name) is not None:
            setattr(row, field_name, float(changes[field_name]))
    row.updated_at = utc_now()
    db.commit()
    db.refresh(row)
    return row


def delete_transaction(db: Session, transaction_id: int) -> None:
    row = get_transaction(db, transaction_id)
    db.delete(row)
    db.commit()

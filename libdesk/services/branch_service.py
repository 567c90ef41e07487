from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from libdesk.domain.errors import ConflictError, RecordNotFoundError
from libdesk.models import AdvancePayment, Branch, Expense, MembershipHistory, PreviousDuePayment, Seat, SeatAssignment, Student


GLOBAL_BRANCH_LABEL = 'Global'
logger = logging.getLogger(__name__)


def list_branches(db: Session) -> list[Branch]:
    return db.query(Branch).order_by(Branch.name.asc()).all()


def get_branch(db: Session, branch_id: int) -> Branch:
    row = db.query(Branch).filter(Branch.id == branch_id).first()
    if not row:
        raise RecordNotFoundError('Branch not found')
    return row


def create_branch(db: Session, *, name: str, code: str | None = None) -> Branch:
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValueError('Branch name is required')
    row = Branch(name=clean_name, code=(code or '').strip() or None)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_branch(db: Session, branch_id: int, *, name: str, code: str | None = None) -> Branch:
    row = get_branch(db, branch_id)
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValueError('Branch name is required')
    row.name = clean_name
    row.code = (code or '').strip() or None
    db.commit()
    db.refresh(row)
    return row


def delete_branch(db: Session, branch_id: int) -> None:
    row = get_branch(db, branch_id)
    if db.query(Student.id).filter(Student.branch_id == branch_id).first():
        raise ConflictError('Branch still has students')
    seat_ids = select(Seat.id).where(Seat.branch_id == branch_id)
    db.query(SeatAssignment).filter(SeatAssignment.seat_id.in_(seat_ids)).delete(synchronize_session=False)
    db.query(Seat).filter(Seat.branch_id == branch_id).delete(synchronize_session=False)
    # Money rows outlive the branch and fall back to the "Global" label.
    for model in (MembershipHistory, PreviousDuePayment, Expense, AdvancePayment):
        db.query(model).filter(model.branch_id == branch_id).update({model.branch_id: None}, synchronize_session=False)
    db.delete(row)
    db.commit()
    logger.info('branch_deleted branch_id=%s', branch_id)


def branch_label(branch: Branch | None) -> str:
    return branch.name if branch else GLOBAL_BRANCH_LABEL

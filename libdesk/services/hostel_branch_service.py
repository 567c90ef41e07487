from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from libdesk.domain.errors import ConflictError, RecordNotFoundError
from libdesk.models import HostelBranch, HostelExpense, HostelStudent


logger = logging.getLogger(__name__)


def serialize_hostel_branch(row: HostelBranch, student_count: int = 0) -> dict:
    return {
        'id': row.id,
        'name': row.name,
        'address': row.address,
        'student_count': int(student_count or 0),
    }


def list_hostel_branches(db: Session) -> list[dict]:
    counts = dict(
        db.query(HostelStudent.branch_id, func.count(HostelStudent.id)).group_by(HostelStudent.branch_id).all()
    )
    rows = db.query(HostelBranch).order_by(HostelBranch.name.asc()).all()
    return [serialize_hostel_branch(row, counts.get(row.id, 0)) for row in rows]


def get_hostel_branch(db: Session, branch_id: int) -> HostelBranch:
    row = db.query(HostelBranch).filter(HostelBranch.id == branch_id).first()
    if not row:
        raise RecordNotFoundError('Hostel branch not found')
    return row


def _clean_name(name: str) -> str:
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValueError('Branch name is required')
    return clean_name


def create_hostel_branch(db: Session, *, name: str, address: str | None = None) -> dict:
    row = HostelBranch(name=_clean_name(name), address=(address or '').strip() or None)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('hostel_branch_created branch_id=%s', row.id)
    return serialize_hostel_branch(row)


def update_hostel_branch(db: Session, branch_id: int, *, name: str, address: str | None = None) -> dict:
    row = get_hostel_branch(db, branch_id)
    row.name = _clean_name(name)
    row.address = (address or '').strip() or None
    db.commit()
    db.refresh(row)
    count = db.query(HostelStudent.id).filter(HostelStudent.branch_id == branch_id).count()
    return serialize_hostel_branch(row, count)


def delete_hostel_branch(db: Session, branch_id: int) -> None:
    row = get_hostel_branch(db, branch_id)
    if db.query(HostelStudent.id).filter(HostelStudent.branch_id == branch_id).first():
        raise ConflictError('Cannot delete branch with existing students')
    db.query(HostelExpense).filter(HostelExpense.branch_id == branch_id).update(
        {HostelExpense.branch_id: None},
        synchronize_session=False,
    )
    db.delete(row)
    db.commit()
    logger.info('hostel_branch_deleted branch_id=%s', branch_id)

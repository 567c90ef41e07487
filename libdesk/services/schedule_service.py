from __future__ import annotations

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from libdesk.core.time_provider import utc_now
from libdesk.domain.errors import RecordNotFoundError
from libdesk.models import Schedule, SeatAssignment


def list_schedules(db: Session) -> list[Schedule]:
    return db.query(Schedule).order_by(Schedule.created_at.desc(), Schedule.title.asc()).all()


def list_schedules_with_student_counts(db: Session) -> list[dict]:
    rows = (
        db.query(Schedule, func.count(SeatAssignment.student_id))
        .outerjoin(SeatAssignment, SeatAssignment.shift_id == Schedule.id)
        .group_by(Schedule.id)
        .order_by(Schedule.event_date.asc(), Schedule.time.asc())
        .all()
    )
    return [
        {
            'id': row.id,
            'title': row.title,
            'description': row.description,
            'time': row.time,
            'event_date': row.event_date.isoformat(),
            'created_at': row.created_at.isoformat() if row.created_at else None,
            'student_count': int(count or 0),
        }
        for row, count in rows
    ]


def get_schedule(db: Session, schedule_id: int) -> Schedule:
    row = db.query(Schedule).filter(Schedule.id == schedule_id).first()
    if not row:
        raise RecordNotFoundError('Schedule not found')
    return row


def create_schedule(
    db: Session,
    *,
    title: str,
    time: str,
    event_date: date,
    description: str | None = None,
) -> Schedule:
    if not (title or '').strip() or not (time or '').strip():
        raise ValueError('Title, time, and event_date (YYYY-MM-DD) are required')
    row = Schedule(
        title=title.strip(),
        description=description or None,
        time=time.strip(),
        event_date=event_date,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_schedule(db: Session, schedule_id: int, **changes) -> Schedule:
    row = get_schedule(db, schedule_id)
    for field_name in ('title', 'description', 'time', 'event_date'):
        value = changes.get(field_name)
        if value is not None:
            setattr(row, field_name, value)
    row.updated_at = utc_now()
    db.commit()
    db.refresh(row)
    return row


def delete_schedule(db: Session, schedule_id: int) -> None:
    row = get_schedule(db, schedule_id)
    # Assignments go with the shift through the relationship cascade.
    db.delete(row)
    db.commit()

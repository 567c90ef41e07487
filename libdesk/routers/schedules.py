from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import ScheduleCreate, ScheduleRead, ScheduleUpdate
from libdesk.services import schedule_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/schedules',
    tags=['Schedules'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('', response_model=list[ScheduleRead])
def list_schedules(db: Session = Depends(get_db)):
    return schedule_service.list_schedules(db)


@router.get('/with-students')
def list_with_students(db: Session = Depends(get_db)):
    return schedule_service.list_schedules_with_student_counts(db)


@router.get('/{schedule_id}', response_model=ScheduleRead)
def get_schedule(schedule_id: int, db: Session = Depends(get_db)):
    try:
        return schedule_service.get_schedule(db, schedule_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('', response_model=ScheduleRead, status_code=201)
def create_schedule(payload: ScheduleCreate, db: Session = Depends(get_db)):
    try:
        return schedule_service.create_schedule(db, **payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{schedule_id}', response_model=ScheduleRead)
def update_schedule(schedule_id: int, payload: ScheduleUpdate, db: Session = Depends(get_db)):
    try:
        return schedule_service.update_schedule(db, schedule_id, **payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{schedule_id}')
def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    try:
        schedule_service.delete_schedule(db, schedule_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Schedule deleted', 'id': schedule_id}

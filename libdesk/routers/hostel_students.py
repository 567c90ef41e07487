from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.core.time_provider import TimeProvider
from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import get_time_provider, http_error, require_admin_or_staff
from libdesk.schemas import HostelRenewRequest, HostelStudentCreate, HostelStudentUpdate
from libdesk.services import hostel_student_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/hostel/students',
    tags=['Hostel'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_hostel_students(branch_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    return {'students': hostel_student_service.list_hostel_students(db, branch_id=branch_id)}


@router.get('/meta/expired')
def expired_hostel_students(
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return {'expired_students': hostel_student_service.list_expired_hostel_students(db, time_provider=time_provider)}


@router.get('/{student_id}')
def get_hostel_student(student_id: int, db: Session = Depends(get_db)):
    try:
        return hostel_student_service.hostel_student_detail(db, student_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('', status_code=201)
def create_hostel_student(
    payload: HostelStudentCreate,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return hostel_student_service.create_hostel_student(db, payload.model_dump(), time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{student_id}')
def update_hostel_student(student_id: int, payload: HostelStudentUpdate, db: Session = Depends(get_db)):
    try:
        return hostel_student_service.update_hostel_student(db, student_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('/{student_id}/renew')
def renew_hostel_student(
    student_id: int,
    payload: HostelRenewRequest,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return hostel_student_service.renew_hostel_stay(db, student_id, payload.model_dump(), time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{student_id}')
def delete_hostel_student(student_id: int, db: Session = Depends(get_db)):
    try:
        hostel_student_service.delete_hostel_student(db, student_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Student and their history deleted'}

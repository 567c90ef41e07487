from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.core.time_provider import TimeProvider
from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import get_time_provider, http_error, require_admin, require_admin_or_staff
from libdesk.schemas import StudentCreate, StudentPayload, StudentRenew, StudentStatusUpdate
from libdesk.services import report_service, student_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/students',
    tags=['Students'],
)


@router.get('', dependencies=[Depends(require_admin_or_staff)])
def list_students(
    search: str = Query(default=''),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return student_service.list_students(db, search=search, branch_id=branch_id, time_provider=time_provider)


@router.get('/next-registration-number', dependencies=[Depends(require_admin_or_staff)])
def next_registration_number(db: Session = Depends(get_db)):
    return {'registration_number': student_service.next_registration_number(db)}


@router.get('/inactive', dependencies=[Depends(require_admin_or_staff)])
def inactive_students(
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return student_service.list_inactive_students(db, branch_id=branch_id, time_provider=time_provider)


@router.get('/active', dependencies=[Depends(require_admin_or_staff)])
def active_students(
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return student_service.list_active_students(db, branch_id=branch_id, time_provider=time_provider)


@router.get('/expired', dependencies=[Depends(require_admin_or_staff)])
def expired_students(
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return student_service.list_expired_students(db, branch_id=branch_id, time_provider=time_provider)


@router.get('/expiring-soon', dependencies=[Depends(require_admin_or_staff)])
def expiring_soon(
    days: int | None = Query(default=None, ge=0, le=60),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return student_service.list_expiring_soon(db, days=days, branch_id=branch_id, time_provider=time_provider)


@router.get('/stats/dashboard', dependencies=[Depends(require_admin)])
def dashboard_stats(
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    return report_service.dashboard_stats(db, branch_id=branch_id, time_provider=time_provider)


@router.get('/shift/{shift_id}', dependencies=[Depends(require_admin_or_staff)])
def students_for_shift(
    shift_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=200),
    search: str = Query(default=''),
    status: str = Query(default='all', pattern='^(all|active|expired)$'),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return student_service.list_students_for_shift(
            db,
            shift_id,
            page=page,
            limit=limit,
            search=search,
            status=status,
            branch_id=branch_id,
            time_provider=time_provider,
        )
    except ValueError as exc:
        raise http_error(exc) from exc


@router.get('/{student_id}', dependencies=[Depends(require_admin_or_staff)])
def get_student(
    student_id: int,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return student_service.get_student_detail(db, student_id, time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('', status_code=201, dependencies=[Depends(require_admin_or_staff)])
def create_student(
    payload: StudentCreate,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return student_service.create_student(db, payload.model_dump(), time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{student_id}', dependencies=[Depends(require_admin_or_staff)])
def update_student(
    student_id: int,
    payload: StudentPayload,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return student_service.update_student(db, student_id, payload.model_dump(), time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{student_id}/status', dependencies=[Depends(require_admin_or_staff)])
def update_status(
    student_id: int,
    payload: StudentStatusUpdate,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        return student_service.set_student_status(db, student_id, payload.is_active, time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('/{student_id}/renew', dependencies=[Depends(require_admin_or_staff)])
def renew_student(
    student_id: int,
    payload: StudentRenew,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        student = student_service.renew_student(db, student_id, payload.model_dump(), time_provider=time_provider)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Membership renewed', 'student': student}


@router.delete('/{student_id}', dependencies=[Depends(require_admin_or_staff)])
def delete_student(student_id: int, db: Session = Depends(get_db)):
    try:
        student_service.delete_student(db, student_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Student deleted'}

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import SeatCreate
from libdesk.services import seat_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/seats',
    tags=['Seats'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_seats(
    shift_id: int | None = Query(default=None),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return seat_service.list_seats(db, shift_id=shift_id, branch_id=branch_id)


@router.get('/available')
def available_seats(
    shift_id: int = Query(...),
    student_id: int | None = Query(default=None),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return seat_service.available_seats(db, shift_id=shift_id, student_id=student_id, branch_id=branch_id)


@router.post('', status_code=201)
def create_seats(payload: SeatCreate, db: Session = Depends(get_db)):
    try:
        rows = seat_service.create_seats(db, seat_numbers=payload.seat_numbers, branch_id=payload.branch_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {
        'message': 'Seats added',
        'seats': [{'id': row.id, 'seat_number': row.seat_number, 'branch_id': row.branch_id} for row in rows],
    }


@router.delete('/{seat_id}')
def delete_seat(seat_id: int, db: Session = Depends(get_db)):
    try:
        seat_service.delete_seat(db, seat_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Seat deleted'}


@router.get('/{seat_id}/assignments')
def seat_assignments(seat_id: int, db: Session = Depends(get_db)):
    try:
        return seat_service.seat_assignments(db, seat_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.get('/{seat_id}/available-shifts')
def available_shifts(
    seat_id: int,
    student_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return seat_service.available_shifts(db, seat_id, student_id=student_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.get('/{seat_id}/shift-options')
def shift_options(
    seat_id: int,
    student_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return seat_service.shift_options(db, seat_id, student_id=student_id)
    except ValueError as exc:
        raise http_error(exc) from exc

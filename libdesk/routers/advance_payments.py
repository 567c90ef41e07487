from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.core.time_provider import TimeProvider
from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import get_time_provider, http_error, require_admin_or_staff
from libdesk.schemas import AdvancePaymentCreate, AdvancePaymentUpdate, AdvancePaymentUseRequest
from libdesk.services import advance_payment_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/advance-payments',
    tags=['Advance Payments'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_advance_payments(
    branch_id: int | None = Query(default=None),
    student_id: int | None = Query(default=None),
    status: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return advance_payment_service.list_advance_payments(
        db,
        branch_id=branch_id,
        student_id=student_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )


@router.get('/student/{student_id}')
def student_advances(student_id: int, db: Session = Depends(get_db)):
    return advance_payment_service.student_advance_summary(db, student_id)


@router.post('', status_code=201)
def create_advance_payment(
    payload: AdvancePaymentCreate,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        advance = advance_payment_service.create_advance_payment(
            db,
            **payload.model_dump(),
            time_provider=time_provider,
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Advance payment created successfully', 'advance_payment': advance}


@router.put('/{advance_id}')
def update_advance_payment(advance_id: int, payload: AdvancePaymentUpdate, db: Session = Depends(get_db)):
    try:
        advance = advance_payment_service.update_advance_payment(
            db,
            advance_id,
            **payload.model_dump(exclude_unset=True),
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Advance payment updated successfully', 'advance_payment': advance}


@router.delete('/{advance_id}')
def delete_advance_payment(advance_id: int, db: Session = Depends(get_db)):
    try:
        advance_payment_service.delete_advance_payment(db, advance_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Advance payment deleted successfully'}


@router.post('/{advance_id}/use')
def use_advance_payment(advance_id: int, payload: AdvancePaymentUseRequest, db: Session = Depends(get_db)):
    try:
        advance = advance_payment_service.use_advance_payment(db, advance_id, **payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Advance payment used successfully', 'advance_payment': advance}


@router.get('/{advance_id}/usage')
def usage_history(advance_id: int, db: Session = Depends(get_db)):
    try:
        return advance_payment_service.usage_history(db, advance_id)
    except ValueError as exc:
        raise http_error(exc) from exc

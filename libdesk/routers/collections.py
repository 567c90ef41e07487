from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.core.time_provider import TimeProvider
from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import get_time_provider, http_error, require_admin_or_staff
from libdesk.schemas import DuePaymentRequest
from libdesk.services import collection_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/collections',
    tags=['Collections'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_collections(
    month: str | None = Query(default=None),
    branch_id: int | None = Query(default=None),
    date: str | None = Query(default=None),
    search: str = Query(default=''),
    db: Session = Depends(get_db),
):
    try:
        return collection_service.list_collections(db, month=month, branch_id=branch_id, day=date, search=search)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{history_id}')
def pay_due(
    history_id: int,
    payload: DuePaymentRequest,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        collection = collection_service.pay_due(
            db,
            history_id,
            amount=payload.payment_amount,
            method=payload.payment_method,
            time_provider=time_provider,
        )
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Payment updated successfully', 'collection': collection}


@router.delete('/{history_id}')
def delete_collection(history_id: int, db: Session = Depends(get_db)):
    try:
        collection_service.delete_collection(db, history_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Collection record deleted'}

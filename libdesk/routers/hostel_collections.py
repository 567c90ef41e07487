from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import HostelPaymentRequest
from libdesk.services import hostel_collection_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/hostel/collections',
    tags=['Hostel'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_hostel_collections(
    month: str | None = Query(default=None),
    branch_id: int | None = Query(default=None),
    search: str = Query(default=''),
    db: Session = Depends(get_db),
):
    try:
        return hostel_collection_service.list_hostel_collections(db, month=month, branch_id=branch_id, search=search)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{history_id}')
def pay_hostel_due(history_id: int, payload: HostelPaymentRequest, db: Session = Depends(get_db)):
    try:
        return hostel_collection_service.pay_hostel_due(
            db,
            history_id,
            amount=payload.payment_amount,
            method=payload.payment_type,
        )
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{history_id}')
def delete_hostel_collection(history_id: int, db: Session = Depends(get_db)):
    try:
        hostel_collection_service.delete_hostel_collection(db, history_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Collection record deleted'}

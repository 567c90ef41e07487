from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import TransactionCreate, TransactionRead, TransactionUpdate
from libdesk.services import transaction_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/transactions',
    tags=['Transactions'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('', response_model=list[TransactionRead])
def list_transactions(db: Session = Depends(get_db)):
    return transaction_service.list_transactions(db)


@router.post('', response_model=TransactionRead, status_code=201)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db)):
    try:
        return transaction_service.create_transaction(db, **payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{transaction_id}', response_model=TransactionRead)
def update_transaction(transaction_id: int, payload: TransactionUpdate, db: Session = Depends(get_db)):
    try:
        return transaction_service.update_transaction(db, transaction_id, **payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{transaction_id}')
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        transaction_service.delete_transaction(db, transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Transaction deleted'}

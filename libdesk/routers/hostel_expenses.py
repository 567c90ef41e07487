from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import ExpensePayload
from libdesk.services import hostel_expense_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/hostel/expenses',
    tags=['Hostel'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_hostel_expenses(
    branch_id: int | None = Query(default=None),
    month: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return hostel_expense_service.list_hostel_expenses(db, branch_id=branch_id, month=month)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('', status_code=201)
def create_hostel_expense(payload: ExpensePayload, db: Session = Depends(get_db)):
    try:
        return hostel_expense_service.create_hostel_expense(db, payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{expense_id}')
def update_hostel_expense(expense_id: int, payload: ExpensePayload, db: Session = Depends(get_db)):
    try:
        return hostel_expense_service.update_hostel_expense(db, expense_id, payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{expense_id}')
def delete_hostel_expense(expense_id: int, db: Session = Depends(get_db)):
    try:
        hostel_expense_service.delete_hostel_expense(db, expense_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Expense deleted'}

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import ExpensePayload
from libdesk.services import expense_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/expenses',
    tags=['Expenses'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_expenses(
    branch_id: int | None = Query(default=None),
    month: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return expense_service.list_expenses(db, branch_id=branch_id, month=month)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.post('', status_code=201)
def create_expense(payload: ExpensePayload, db: Session = Depends(get_db)):
    try:
        return expense_service.create_expense(db, payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{expense_id}')
def update_expense(expense_id: int, payload: ExpensePayload, db: Session = Depends(get_db)):
    try:
        return expense_service.update_expense(db, expense_id, payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{expense_id}')
def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    try:
        expense_service.delete_expense(db, expense_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Expense deleted'}

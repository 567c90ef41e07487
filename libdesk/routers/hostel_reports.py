from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.services import report_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/hostel/reports',
    tags=['Hostel'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('/profit-loss')
def hostel_profit_loss(
    month: str | None = Query(default=None),
    date: str | None = Query(default=None),
    branch_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return report_service.hostel_profit_loss(db, month=month, day=date, branch_id=branch_id)
    except ValueError as exc:
        raise http_error(exc) from exc

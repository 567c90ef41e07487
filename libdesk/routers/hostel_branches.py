from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin_or_staff
from libdesk.schemas import HostelBranchPayload
from libdesk.services import hostel_branch_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/hostel/branches',
    tags=['Hostel'],
    dependencies=[Depends(require_admin_or_staff)],
)


@router.get('')
def list_hostel_branches(db: Session = Depends(get_db)):
    return hostel_branch_service.list_hostel_branches(db)


@router.post('', status_code=201)
def create_hostel_branch(payload: HostelBranchPayload, db: Session = Depends(get_db)):
    try:
        return hostel_branch_service.create_hostel_branch(db, name=payload.name, address=payload.address)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{branch_id}')
def update_hostel_branch(branch_id: int, payload: HostelBranchPayload, db: Session = Depends(get_db)):
    try:
        return hostel_branch_service.update_hostel_branch(db, branch_id, name=payload.name, address=payload.address)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{branch_id}')
def delete_hostel_branch(branch_id: int, db: Session = Depends(get_db)):
    try:
        hostel_branch_service.delete_hostel_branch(db, branch_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Branch deleted'}

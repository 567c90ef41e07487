from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin, require_admin_or_staff
from libdesk.schemas import BranchCreate, BranchRead
from libdesk.services import branch_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/branches',
    tags=['Branches'],
)


@router.get('', response_model=list[BranchRead])
def list_branches(_: dict = Depends(require_admin_or_staff), db: Session = Depends(get_db)):
    return branch_service.list_branches(db)


@router.post('', response_model=BranchRead, status_code=201)
def create_branch(payload: BranchCreate, _: dict = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        return branch_service.create_branch(db, name=payload.name, code=payload.code)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{branch_id}', response_model=BranchRead)
def update_branch(
    branch_id: int,
    payload: BranchCreate,
    _: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return branch_service.update_branch(db, branch_id, name=payload.name, code=payload.code)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{branch_id}')
def delete_branch(branch_id: int, _: dict = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        branch_service.delete_branch(db, branch_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Branch deleted'}

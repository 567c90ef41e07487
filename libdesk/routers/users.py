from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin, require_admin_or_staff
from libdesk.schemas import ProfileUpdate, UserCreate, UserRead
from libdesk.services import user_service
from libdesk.services.auth_service import create_user


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/users',
    tags=['Users'],
)


@router.get('/profile', response_model=UserRead)
def profile(session: dict = Depends(require_admin_or_staff), db: Session = Depends(get_db)):
    try:
        return user_service.get_user(db, session['user_id'])
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/profile', response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    session: dict = Depends(require_admin_or_staff),
    db: Session = Depends(get_db),
):
    try:
        return user_service.update_profile(db, session['user_id'], **payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.get('', response_model=list[UserRead])
def list_users(_: dict = Depends(require_admin), db: Session = Depends(get_db)):
    return user_service.list_users(db)


@router.post('', response_model=UserRead, status_code=201)
def add_user(payload: UserCreate, _: dict = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        return create_user(db, **payload.model_dump())
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{user_id}')
def delete_user(user_id: int, session: dict = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == session['user_id']:
        raise http_error(ValueError('You cannot delete your own account'))
    try:
        user_service.delete_user(db, user_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'User deleted'}

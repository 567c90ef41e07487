from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import require_admin
from libdesk.schemas import SettingsUpdate
from libdesk.services import settings_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/settings',
    tags=['Settings'],
    dependencies=[Depends(require_admin)],
)


@router.get('')
def get_settings(db: Session = Depends(get_db)):
    return settings_service.get_settings(db)


@router.put('')
def update_settings(payload: SettingsUpdate, db: Session = Depends(get_db)):
    return settings_service.update_settings(db, **payload.model_dump(exclude_unset=True))

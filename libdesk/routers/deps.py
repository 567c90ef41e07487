from fastapi import Depends, HTTPException, Request

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.errors import ConflictError, RecordNotFoundError
from libdesk.models import Role
from libdesk.services.auth_service import validate_session_token
from libdesk.session_middleware import resolve_token


def get_time_provider() -> TimeProvider:
    return default_time_provider


def require_session(request: Request) -> dict:
    session = getattr(request.state, 'auth_user', None) or validate_session_token(resolve_token(request))
    if not session:
        raise HTTPException(status_code=401, detail='Authentication required')
    return session


def require_admin_or_staff(session: dict = Depends(require_session)) -> dict:
    if session.get('role') not in (Role.ADMIN.value, Role.STAFF.value):
        raise HTTPException(status_code=403, detail='Admin or staff access required')
    return session


def require_admin(session: dict = Depends(require_session)) -> dict:
    if session.get('role') != Role.ADMIN.value:
        raise HTTPException(status_code=403, detail='Admin access required')
    return session


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=403, detail=str(exc) or 'Forbidden')
    return HTTPException(status_code=400, detail=str(exc))

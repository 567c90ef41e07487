from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from libdesk.config import settings
from libdesk.core.time_provider import TimeProvider
from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import get_time_provider
from libdesk.schemas import LoginRequest
from libdesk.services.auth_service import (
    AuthenticationError,
    clear_session_token,
    login_password,
    validate_session_token,
)
from libdesk.session_middleware import AUTH_COOKIE, resolve_token


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/auth',
    tags=['Auth'],
)


@router.post('/login')
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    time_provider: TimeProvider = Depends(get_time_provider),
):
    try:
        session = login_password(db, payload.username, payload.password, time_provider=time_provider)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    response = JSONResponse(
        {
            'message': 'Login successful',
            'token': session['token'],
            'user': {'id': session['user_id'], 'username': session['username'], 'role': session['role']},
            'expires_at': session['expires_at'],
        }
    )
    response.set_cookie(
        AUTH_COOKIE,
        session['token'],
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite='lax',
        max_age=int(settings.auth_session_expiry_hours) * 3600,
    )
    return response


@router.get('/logout')
def logout(request: Request, time_provider: TimeProvider = Depends(get_time_provider)):
    clear_session_token(resolve_token(request), time_provider=time_provider)
    response = JSONResponse({'message': 'Logout successful'})
    response.delete_cookie(AUTH_COOKIE)
    return response


@router.get('/status')
def status(request: Request, time_provider: TimeProvider = Depends(get_time_provider)):
    session = validate_session_token(resolve_token(request), time_provider=time_provider)
    if not session:
        return {'is_authenticated': False}
    return {
        'is_authenticated': True,
        'user': {'id': session['user_id'], 'username': session['username'], 'role': session['role']},
    }

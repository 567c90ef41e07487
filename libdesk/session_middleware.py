from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from libdesk.services.auth_service import validate_session_token


AUTH_COOKIE = 'auth_session'


def resolve_token(request: Request) -> str | None:
    token = request.cookies.get(AUTH_COOKIE)
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


class SessionAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self._public_prefixes = ('/api/auth/',)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith('/api/') or path.startswith(self._public_prefixes):
            return await call_next(request)

        session = validate_session_token(resolve_token(request))
        if not session:
            return JSONResponse(status_code=401, content={'detail': 'Authentication required'})
        request.state.auth_user = session
        return await call_next(request)

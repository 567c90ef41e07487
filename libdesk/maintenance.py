from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from libdesk.config import Settings, settings as default_settings


READ_ONLY_METHODS = ('GET', 'HEAD')
MAINTENANCE_MESSAGE = 'The system is in read-only mode for maintenance. Please try again later.'


class MaintenanceModeMiddleware(BaseHTTPMiddleware):
    """Rejects writes with 503 while ``MAINTENANCE_MODE`` is on."""

    def __init__(self, app, settings: Settings | None = None):
        super().__init__(app)
        self._settings = settings or default_settings

    async def dispatch(self, request: Request, call_next):
        if not self._settings.maintenance_enabled:
            return await call_next(request)
        if request.method.upper() in READ_ONLY_METHODS:
            return await call_next(request)
        if request.url.path.startswith(self._settings.maintenance_allow_prefixes):
            return await call_next(request)
        return JSONResponse(
            status_code=503,
            content={'error': MAINTENANCE_MESSAGE, 'readOnly': True},
        )

from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from libdesk import __version__
from libdesk.config import settings
from libdesk.db import Base, engine, session_scope
from libdesk.maintenance import MaintenanceModeMiddleware
from libdesk.request_context import current_endpoint
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers import (
    advance_payments,
    auth,
    branches,
    collections,
    expenses,
    hostel_branches,
    hostel_collections,
    hostel_expenses,
    hostel_reports,
    hostel_students,
    products,
    reports,
    schedules,
    seats,
    settings as settings_router,
    students,
    transactions,
    users,
)
from libdesk.scheduler import start_scheduler, stop_scheduler
from libdesk.services.auth_service import ensure_default_admin
from libdesk.session_middleware import SessionAuthMiddleware

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
logger = logging.getLogger(__name__)

ROUTERS = (
    auth,
    users,
    branches,
    schedules,
    seats,
    students,
    collections,
    expenses,
    transactions,
    advance_payments,
    reports,
    hostel_branches,
    hostel_students,
    hostel_collections,
    hostel_expenses,
    hostel_reports,
    products,
    settings_router,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        ensure_default_admin(db)
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
app.router.route_class = EndpointNameRoute
app.add_middleware(SessionAuthMiddleware)
# Added last so it runs first: writes are refused before any auth work.
app.add_middleware(MaintenanceModeMiddleware)


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('libdesk.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception(
        'request_failed path=%s method=%s endpoint=%s',
        request.url.path,
        request.method,
        current_endpoint.get(),
    )
    return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


for module in ROUTERS:
    app.include_router(module.router)


@app.get('/')
@app.get('/health')
def health():
    return {
        'app': settings.app_name,
        'version': __version__,
        'status': 'ok',
        'read_only': settings.maintenance_enabled,
    }
